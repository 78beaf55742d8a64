"""Tests for client.py — StrapiClient operations routed across both surfaces."""

import base64
import json
from unittest.mock import MagicMock

import httpx
import pytest

from strapi_mcp.auth import LOGIN_ENDPOINT
from strapi_mcp.client import StrapiClient
from strapi_mcp.exceptions import ConfigError, HTTPError, PrivilegeError, StrapiError
from strapi_mcp.session import Session
from conftest import Recorder, json_response, login_ok, make_settings, mock_http

BUILDER = "/content-type-builder/content-types"
ARTICLE_UID = "api::article.article"
CM_ARTICLES = f"/content-manager/collection-types/{ARTICLE_UID}"

ARTICLE_SCHEMA = {
    "uid": ARTICLE_UID,
    "schema": {
        "displayName": "Article",
        "singularName": "article",
        "pluralName": "articles",
        "kind": "collectionType",
        "draftAndPublish": True,
        "attributes": {
            "title": {"type": "string", "required": True},
            "slug": {"type": "uid", "targetField": "title"},
            "body": {"type": "richtext"},
        },
    },
}

CONTENT_TYPES = {
    "data": [
        ARTICLE_SCHEMA,
        {"uid": "plugin::users-permissions.user", "schema": {"pluralName": "users"}},
        {"uid": "admin::user", "schema": {"pluralName": "admin-users"}},
    ]
}


def _client(rec, clock, fake_sleep, admin=True, token=None, **kwargs):
    return StrapiClient(
        make_settings(admin=admin, token=token),
        http=mock_http(rec),
        session=Session(clock=clock),
        sleep=fake_sleep,
        **kwargs,
    )


def _admin_routes(extra=None):
    routes = {
        ("POST", LOGIN_ENDPOINT): login_ok("jwt"),
        ("GET", BUILDER): json_response(200, CONTENT_TYPES),
        ("GET", f"{BUILDER}/{ARTICLE_UID}"): json_response(200, {"data": ARTICLE_SCHEMA}),
    }
    routes.update(extra or {})
    return routes


class TestConstruction:
    def test_requires_a_credential(self):
        with pytest.raises(ConfigError, match="Missing authentication"):
            StrapiClient(make_settings(admin=False, token=None), http=mock_http(Recorder()))

    def test_rejects_placeholder_token(self):
        with pytest.raises(ConfigError, match="placeholder"):
            StrapiClient(make_settings(admin=False, token="strapi_token"),
                         http=mock_http(Recorder()))

    def test_seeds_session_from_cache(self, clock, fake_sleep):
        cache = MagicMock()
        cache.load.return_value = "cached-jwt"
        client = _client(Recorder(), clock, fake_sleep, token_cache=cache)
        assert client.get_token() == "cached-jwt"

    def test_clear_token_clears_cache(self, clock, fake_sleep):
        cache = MagicMock()
        cache.load.return_value = "cached-jwt"
        client = _client(Recorder(), clock, fake_sleep, token_cache=cache)
        client.clear_token()
        assert client.get_token() is None
        cache.clear.assert_called_once()

    @pytest.mark.asyncio
    async def test_clear_token_cache_reports(self, clock, fake_sleep):
        cache = MagicMock()
        cache.load.return_value = "cached-jwt"
        client = _client(Recorder(), clock, fake_sleep, token_cache=cache)
        assert await client.clear_token_cache() == {"cleared": True, "cacheEnabled": True}
        assert client.get_token() is None
        cache.clear.assert_called_once()

    @pytest.mark.asyncio
    async def test_async_context_manager_closes(self, clock, fake_sleep):
        http = mock_http(Recorder())
        async with StrapiClient(make_settings(), http=http, sleep=fake_sleep):
            pass
        assert http.is_closed


class TestAuthSurface:
    @pytest.mark.asyncio
    async def test_login_and_token(self, clock, fake_sleep):
        rec = Recorder(_admin_routes())
        client = _client(rec, clock, fake_sleep)
        assert await client.login_to_admin() is True
        assert client.get_token() == "jwt"

    @pytest.mark.asyncio
    async def test_make_admin_api_request(self, clock, fake_sleep):
        me = json_response(200, {"data": {"id": 1}})
        rec = Recorder(_admin_routes({("GET", "/admin/users/me"): me}))
        client = _client(rec, clock, fake_sleep)
        assert await client.make_admin_api_request("/admin/users/me") == {"data": {"id": 1}}


class TestContentTypes:
    @pytest.mark.asyncio
    async def test_admin_lists_project_types_only(self, clock, fake_sleep):
        client = _client(Recorder(_admin_routes()), clock, fake_sleep)
        rows = await client.list_content_types()
        assert [r["uid"] for r in rows] == [ARTICLE_UID]
        assert rows[0]["pluralApiId"] == "articles"
        assert rows[0]["info"]["displayName"] == "Article"

    @pytest.mark.asyncio
    async def test_public_discovery(self, clock, fake_sleep):
        rec = Recorder({
            ("GET", "/api/articles"): json_response(
                200, {"data": [{"id": 1, "documentId": "d1", "title": "Hi"}], "meta": {}}
            ),
        })
        client = _client(rec, clock, fake_sleep, admin=False, token="tok")
        rows = await client.list_content_types()
        assert [r["uid"] for r in rows] == [ARTICLE_UID]
        assert rows[0]["attributes"] == {"title": {"type": "string"}}

    @pytest.mark.asyncio
    async def test_public_schema_inferred(self, clock, fake_sleep):
        rec = Recorder({
            ("GET", "/api/articles"): json_response(200, {"data": [{"id": 1, "views": 3}]}),
        })
        client = _client(rec, clock, fake_sleep, admin=False, token="tok")
        schema = await client.get_content_type_schema(ARTICLE_UID, "articles")
        assert schema["inferred"] is True
        assert schema["attributes"] == {"views": {"type": "number"}}


class TestEntries:
    @pytest.mark.asyncio
    async def test_admin_list_normalized(self, clock, fake_sleep):
        rec = Recorder(_admin_routes({
            ("GET", CM_ARTICLES): json_response(
                200, {"results": [{"documentId": "d1"}], "pagination": {"page": 1, "total": 1}}
            ),
        }))
        client = _client(rec, clock, fake_sleep)
        result = await client.get_entries("articles", {"pagination": {"page": 1}, "status": "all"})
        assert result == {
            "data": [{"documentId": "d1"}],
            "meta": {"pagination": {"page": 1, "total": 1}},
        }
        sent = rec.calls("GET", CM_ARTICLES)[0]
        assert sent.url.params["pagination[page]"] == "1"
        assert "status" not in sent.url.params

    @pytest.mark.asyncio
    async def test_falls_back_to_public(self, clock, fake_sleep):
        rec = Recorder({
            ("POST", LOGIN_ENDPOINT): login_ok("jwt"),
            ("GET", BUILDER): json_response(500, {"error": {"status": 500, "message": "x"}}),
            ("GET", "/api/articles"): json_response(200, {"data": [{"id": 2}], "meta": {"m": 1}}),
        })
        client = _client(rec, clock, fake_sleep, token="tok")
        result = await client.get_entries("articles")
        assert result == {"data": [{"id": 2}], "meta": {"m": 1}}
        assert rec.calls("GET", "/api/articles")[0].headers["Authorization"] == "Bearer tok"

    @pytest.mark.asyncio
    async def test_create_validates_required_fields(self, clock, fake_sleep):
        rec = Recorder(_admin_routes())
        client = _client(rec, clock, fake_sleep)
        with pytest.raises(StrapiError, match="Missing required fields"):
            await client.create_entry(ARTICLE_UID, "articles", {"body": "text"})
        assert rec.calls("POST", CM_ARTICLES) == []

    @pytest.mark.asyncio
    async def test_create_generates_slug_and_publishes(self, clock, fake_sleep):
        publish_path = f"{CM_ARTICLES}/actions/publish"
        rec = Recorder(_admin_routes({
            ("POST", publish_path): json_response(200, {"data": {"documentId": "new"}}),
        }))
        client = _client(rec, clock, fake_sleep)
        result = await client.create_entry(
            ARTICLE_UID, "articles", {"title": "My Post"}, publish=True
        )
        assert result == {"documentId": "new"}
        sent = json.loads(rec.calls("POST", publish_path)[0].content)
        assert sent == {"title": "My Post", "slug": "my-post"}

    @pytest.mark.asyncio
    async def test_public_create_wraps_data(self, clock, fake_sleep):
        rec = Recorder({
            ("GET", "/api/articles"): json_response(200, {"data": [{"id": 1, "title": "x"}]}),
            ("POST", "/api/articles"): json_response(200, {"data": {"id": 9}}),
        })
        client = _client(rec, clock, fake_sleep, admin=False, token="tok")
        assert await client.create_entry(ARTICLE_UID, "articles", {"title": "y"}) == {"id": 9}
        assert json.loads(rec.calls("POST", "/api/articles")[0].content) == {"data": {"title": "y"}}

    @pytest.mark.asyncio
    async def test_update_strips_metadata(self, clock, fake_sleep):
        path = f"{CM_ARTICLES}/d1"
        rec = Recorder(_admin_routes({("PUT", path): json_response(200, {"data": {"id": 1}})}))
        client = _client(rec, clock, fake_sleep)
        await client.update_entry("articles", "d1", {"id": 1, "createdAt": "t", "title": "New"})
        assert json.loads(rec.calls("PUT", path)[0].content) == {"title": "New"}

    @pytest.mark.asyncio
    async def test_delete(self, clock, fake_sleep):
        rec = Recorder(_admin_routes({("DELETE", f"{CM_ARTICLES}/d1"): json_response(200, {})}))
        client = _client(rec, clock, fake_sleep)
        assert await client.delete_entry("articles", "d1") == {"deleted": True, "documentId": "d1"}

    @pytest.mark.asyncio
    async def test_unpublish_needs_admin(self, clock, fake_sleep):
        rec = Recorder()
        client = _client(rec, clock, fake_sleep, admin=False, token="tok")
        with pytest.raises(PrivilegeError):
            await client.unpublish_entry("articles", "d1")
        assert rec.requests == []

    @pytest.mark.asyncio
    async def test_connect_relation(self, clock, fake_sleep):
        path = f"{CM_ARTICLES}/d1"
        rec = Recorder(_admin_routes({("PUT", path): json_response(200, {"data": {}})}))
        client = _client(rec, clock, fake_sleep)
        await client.connect_relation("articles", "d1", "tags", ["t1", "t2"])
        body = json.loads(rec.calls("PUT", path)[0].content)
        assert body == {"tags": {"connect": [{"documentId": "t1"}, {"documentId": "t2"}]}}


class TestDeleteAll:
    @pytest.mark.asyncio
    async def test_requires_confirmation(self, clock, fake_sleep):
        rec = Recorder(_admin_routes())
        client = _client(rec, clock, fake_sleep)
        with pytest.raises(StrapiError, match="not confirmed"):
            await client.delete_all_entries("articles")
        assert rec.requests == []

    @pytest.mark.asyncio
    async def test_deletes_until_empty_and_reports_failures(self, clock, fake_sleep):
        remaining = ["d1", "d2", "d3"]

        def listing(request):
            rows = [{"documentId": d} for d in remaining]
            return json_response(200, {"results": rows, "pagination": {"page": 1}})

        def remove(document_id):
            def handler(request):
                remaining.remove(document_id)
                return json_response(200, {})
            return handler

        rec = Recorder(_admin_routes({
            ("GET", CM_ARTICLES): listing,
            ("DELETE", f"{CM_ARTICLES}/d1"): remove("d1"),
            ("DELETE", f"{CM_ARTICLES}/d2"): remove("d2"),
            ("DELETE", f"{CM_ARTICLES}/d3"): json_response(
                500, {"error": {"status": 500, "message": "locked"}}
            ),
        }))
        client = _client(rec, clock, fake_sleep)
        result = await client.delete_all_entries("articles", confirm=True)
        assert result["deletedCount"] == 2
        assert [f["documentId"] for f in result["failed"]] == ["d3"]
        assert remaining == ["d3"]
        listings = rec.calls("GET", CM_ARTICLES)
        assert len(listings) == 2
        assert all(r.url.params["pagination[page]"] == "1" for r in listings)
        assert len(rec.calls("DELETE", f"{CM_ARTICLES}/d3")) == 1


PAGE_PATH = f"{CM_ARTICLES}/p1"
HERO = {"__component": "blocks.hero", "id": 5, "title": "Welcome"}
TEXT = {"__component": "blocks.text", "id": 6, "body": "Hello"}


def _page_routes(sections):
    entry = {"id": 1, "documentId": "p1", "title": "Home", "updatedAt": "t",
             "sections": sections}
    return _admin_routes({
        ("GET", PAGE_PATH): json_response(200, {"data": entry}),
        ("PUT", PAGE_PATH): json_response(200, {"data": {"documentId": "p1"}}),
        ("POST", f"{PAGE_PATH}/actions/publish"): json_response(
            200, {"data": {"documentId": "p1", "publishedAt": "now"}}
        ),
    })


class TestSections:
    @pytest.mark.asyncio
    async def test_add_inserts_and_publishes(self, clock, fake_sleep):
        rec = Recorder(_page_routes([HERO, TEXT]))
        client = _client(rec, clock, fake_sleep)
        cta = {"__component": "blocks.cta", "label": "Go"}
        result = await client.add_section("articles", "p1", "sections", cta, position=1)
        assert result == {"documentId": "p1", "publishedAt": "now"}
        assert rec.calls("GET", PAGE_PATH)[0].url.params["populate"] == "*"
        body = json.loads(rec.calls("PUT", PAGE_PATH)[0].content)
        assert body == {"title": "Home", "sections": [HERO, cta, TEXT]}
        assert len(rec.calls("POST", f"{PAGE_PATH}/actions/publish")) == 1

    @pytest.mark.asyncio
    async def test_reorder_as_draft(self, clock, fake_sleep):
        rec = Recorder(_page_routes([HERO, TEXT]))
        client = _client(rec, clock, fake_sleep)
        await client.reorder_section("articles", "p1", "sections", 0, 1, publish=False)
        body = json.loads(rec.calls("PUT", PAGE_PATH)[0].content)
        assert body["sections"] == [TEXT, HERO]
        assert rec.calls("POST", f"{PAGE_PATH}/actions/publish") == []

    @pytest.mark.asyncio
    async def test_update_and_delete(self, clock, fake_sleep):
        rec = Recorder(_page_routes([HERO, TEXT]))
        client = _client(rec, clock, fake_sleep)
        new_text = {"__component": "blocks.text", "body": "Bye"}
        await client.update_section("articles", "p1", "sections", 1, new_text, publish=False)
        await client.delete_section("articles", "p1", "sections", 0, publish=False)
        first, second = (json.loads(r.content) for r in rec.calls("PUT", PAGE_PATH))
        assert first["sections"] == [HERO, new_text]
        assert second["sections"] == [TEXT]

    @pytest.mark.asyncio
    async def test_bad_index_sends_nothing(self, clock, fake_sleep):
        rec = Recorder(_page_routes([HERO]))
        client = _client(rec, clock, fake_sleep)
        with pytest.raises(StrapiError, match="out of range"):
            await client.delete_section("articles", "p1", "sections", 3)
        assert rec.calls("PUT", PAGE_PATH) == []

    @pytest.mark.asyncio
    async def test_field_must_be_dynamic_zone(self, clock, fake_sleep):
        rec = Recorder(_page_routes([HERO]))
        client = _client(rec, clock, fake_sleep)
        with pytest.raises(StrapiError, match="not a dynamic zone"):
            await client.delete_section("articles", "p1", "title", 0)


class TestMedia:
    @pytest.mark.asyncio
    async def test_upload_rejects_bad_base64(self, clock, fake_sleep):
        client = _client(Recorder(), clock, fake_sleep, admin=False, token="tok")
        with pytest.raises(StrapiError, match="Invalid base64"):
            await client.upload_media("not base64!!", "a.png", "image/png")

    @pytest.mark.asyncio
    async def test_upload_rejects_large_payload(self, clock, fake_sleep):
        client = _client(Recorder(), clock, fake_sleep, admin=False, token="tok")
        with pytest.raises(StrapiError, match="File too large"):
            await client.upload_media("A" * (1024 * 1024 + 4), "a.png", "image/png")

    @pytest.mark.asyncio
    async def test_public_upload(self, clock, fake_sleep):
        rec = Recorder({("POST", "/api/upload"): json_response(200, [{"id": 5, "name": "a.png"}])})
        client = _client(rec, clock, fake_sleep, admin=False, token="tok")
        data = base64.b64encode(b"\x89PNG").decode()
        assert await client.upload_media(data, "a.png", "image/png") == {"id": 5, "name": "a.png"}
        sent = rec.requests[0]
        assert sent.headers["Content-Type"].startswith("multipart/form-data")
        assert b"\x89PNG" in sent.content

    @pytest.mark.asyncio
    async def test_upload_from_missing_path(self, clock, fake_sleep, tmp_path):
        client = _client(Recorder(), clock, fake_sleep, admin=False, token="tok")
        with pytest.raises(StrapiError, match="File not found"):
            await client.upload_media_from_path(str(tmp_path / "nope.png"))

    @pytest.mark.asyncio
    async def test_upload_from_path_guesses_type(self, clock, fake_sleep, tmp_path):
        path = tmp_path / "pic.png"
        path.write_bytes(b"png-bytes")
        rec = Recorder({("POST", "/api/upload"): json_response(200, [{"id": 1}])})
        client = _client(rec, clock, fake_sleep, admin=False, token="tok")
        await client.upload_media_from_path(str(path))
        assert b'filename="pic.png"' in rec.requests[0].content
        assert b"image/png" in rec.requests[0].content

    @pytest.mark.asyncio
    async def test_list_media_filters_base64(self, clock, fake_sleep):
        rec = Recorder({("GET", "/api/upload/files"): json_response(200, [{"data": "A" * 1500}])})
        client = _client(rec, clock, fake_sleep, admin=False, token="tok")
        assert await client.list_media() == [{"data": "[BASE64_DATA_FILTERED - 1500 chars]"}]


class TestSchemaBuilder:
    @pytest.mark.asyncio
    async def test_update_refuses_multiple_removals(self, clock, fake_sleep):
        rec = Recorder(_admin_routes())
        client = _client(rec, clock, fake_sleep)
        with pytest.raises(StrapiError, match="SAFETY BLOCK"):
            await client.update_content_type(ARTICLE_UID, {}, remove_attributes=["body", "slug"])
        assert rec.requests == []

    @pytest.mark.asyncio
    async def test_update_keeps_existing_attributes(self, clock, fake_sleep):
        update_path = "/content-type-builder/update-schema"
        rec = Recorder(_admin_routes({("POST", update_path): json_response(200, {"data": {}})}))
        client = _client(rec, clock, fake_sleep)
        await client.update_content_type(
            ARTICLE_UID, {"summary": {"type": "text"}}, remove_attributes=["body"]
        )
        payload = json.loads(rec.calls("POST", update_path)[0].content)["data"]
        ops = {(a["action"], a["name"]) for a in payload["contentTypes"][0]["attributes"]}
        assert ops == {
            ("update", "title"),
            ("update", "slug"),
            ("create", "summary"),
            ("delete", "body"),
        }

    @pytest.mark.asyncio
    async def test_schema_change_waits_for_restart_in_dev_mode(self, clock, fake_sleep):
        rec = Recorder(_admin_routes({
            ("POST", "/content-type-builder/update-schema"): json_response(200, {"data": {}}),
            ("GET", "/_health"): [httpx.Response(503), httpx.Response(204)],
        }))
        client = _client(rec, clock, fake_sleep, dev_mode=True)
        result = await client.delete_content_type(ARTICLE_UID)
        assert result == {"deleted": True, "uid": ARTICLE_UID}
        assert len(rec.calls("GET", "/_health")) == 2

    @pytest.mark.asyncio
    async def test_components_need_admin(self, clock, fake_sleep):
        client = _client(Recorder(), clock, fake_sleep, admin=False, token="tok")
        with pytest.raises(PrivilegeError):
            await client.list_components()


class TestRest:
    @pytest.mark.asyncio
    async def test_admin_path_needs_admin(self, clock, fake_sleep):
        rec = Recorder()
        client = _client(rec, clock, fake_sleep, admin=False, token="tok")
        with pytest.raises(PrivilegeError):
            await client.strapi_rest("/content-manager/collection-types/x")
        assert rec.requests == []

    @pytest.mark.asyncio
    async def test_api_path_goes_through_content_manager(self, clock, fake_sleep):
        rec = Recorder(_admin_routes({
            ("GET", f"{CM_ARTICLES}/d1"): json_response(200, {"data": {"documentId": "d1"}}),
        }))
        client = _client(rec, clock, fake_sleep, token="tok")
        result = await client.strapi_rest("api/articles/d1")
        assert result == {"data": {"documentId": "d1"}, "meta": {}}

    @pytest.mark.asyncio
    async def test_api_path_public_only(self, clock, fake_sleep):
        rec = Recorder({("GET", "/api/articles"): json_response(200, {"data": []})})
        client = _client(rec, clock, fake_sleep, admin=False, token="tok")
        assert await client.strapi_rest("/api/articles", "get") == {"data": []}

    @pytest.mark.asyncio
    async def test_upstream_error_propagates(self, clock, fake_sleep):
        rec = Recorder({("GET", "/api/missing"): json_response(404, {"error": {"status": 404}})})
        client = _client(rec, clock, fake_sleep, admin=False, token="tok")
        with pytest.raises(HTTPError):
            await client.strapi_rest("/api/missing")


class TestHealth:
    @pytest.mark.asyncio
    async def test_states(self, clock, fake_sleep):
        rec = Recorder({("GET", "/_health"): [httpx.Response(204), httpx.Response(503),
                                              httpx.Response(500)]})
        client = _client(rec, clock, fake_sleep, admin=False, token="tok")
        assert (await client.check_health())["status"] == "healthy"
        assert (await client.check_health())["status"] == "reloading"
        assert (await client.check_health())["status"] == "unhealthy"

    @pytest.mark.asyncio
    async def test_connection_refused(self, clock, fake_sleep):
        def refuse(request):
            raise httpx.ConnectError("refused", request=request)

        client = StrapiClient(make_settings(admin=False, token="tok"), http=mock_http(refuse))
        health = await client.check_health()
        assert health["status"] == "unhealthy"
        assert "refused" in health["message"]

    @pytest.mark.asyncio
    async def test_wait_for_healthy_gives_up(self, clock, fake_sleep):
        rec = Recorder({("GET", "/_health"): httpx.Response(503)})
        client = _client(rec, clock, fake_sleep, admin=False, token="tok")
        with pytest.raises(StrapiError, match="did not become healthy"):
            await client.wait_for_healthy(max_polls=2, interval=0.5)
        assert fake_sleep.calls == [1.0, 0.5, 0.5]

    @pytest.mark.asyncio
    async def test_validate_connection_reports_surface(self, clock, fake_sleep):
        rec = Recorder({("GET", "/api/upload/files"): json_response(200, [])})
        client = _client(rec, clock, fake_sleep, admin=False, token="tok")
        assert await client.validate_connection() == {
            "ok": True,
            "auth_method": "API token",
            "surface": "public",
        }
