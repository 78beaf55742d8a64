"""
StrapiClient — public Python API for Strapi content and schema management.

Single entry point for programmatic use and for the MCP server. Every
operation goes through the SurfaceSelector: the admin (Content-Manager)
surface when admin credentials are configured, the public REST surface
(``/api/...``) otherwise or as a fallback. All methods return plain dicts
suitable for JSON serialization.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import json
import mimetypes
import os
import re
from typing import Any

import httpx

from strapi_mcp import config
from strapi_mcp._utils import (
    attributes_as_dict,
    clean_entry_for_update,
    dynamic_zone_errors,
    ensure_slug_field,
    filter_base64,
    guess_uid,
    infer_schema_from_entry,
    insert_section,
    missing_required_fields,
    move_section,
    remove_section,
    replace_section,
)
from strapi_mcp.api import PublicApi, RequestDispatcher, _log_event
from strapi_mcp.auth import Authenticator
from strapi_mcp.exceptions import StrapiError
from strapi_mcp.session import Session
from strapi_mcp.surfaces import Operation, SurfaceSelector
from strapi_mcp.token_cache import TokenCache
from strapi_mcp.types import (
    ComponentRow,
    ConnectionResult,
    ContentTypeRow,
    EntryListResult,
    HealthResult,
)

_MAX_BASE64_CHARS = 1024 * 1024
_MAX_UPLOAD_BYTES = 10 * 1024 * 1024
_DELETE_PAGE_SIZE = 100
_BASE64_RE = re.compile(r"^[A-Za-z0-9+/]*={0,2}$")

# Collections probed when only an API token is available (no builder API).
_DISCOVERY_CANDIDATES = (
    "articles",
    "pages",
    "posts",
    "categories",
    "authors",
    "tags",
    "projects",
    "technologies",
)

# Path families served by the admin panel rather than the public REST API.
_ADMIN_PREFIXES = (
    "/admin/",
    "/content-manager/",
    "/content-type-builder/",
    "/upload/",
    "/i18n/",
    "/users-permissions/",
)

_REST_PATH_RE = re.compile(r"^/api/([^/?]+)(?:/([^/?]+))?$")

_SYSTEM_COMPONENT_FIELDS = {
    "id",
    "documentId",
    "createdAt",
    "updatedAt",
    "publishedAt",
    "createdBy",
    "updatedBy",
}


def _collection_path(uid, document_id=None, action=None):
    path = f"/content-manager/collection-types/{uid}"
    if document_id:
        path += f"/{document_id}"
    if action:
        path += f"/actions/{action}"
    return path


def _unwrap(response):
    """Content-Manager answers {data: ...} or the bare object."""
    if isinstance(response, dict) and "data" in response:
        return response["data"]
    return response


def _rest_list(response):
    """Normalize a list response to {data: [...], meta: {...}}."""
    if isinstance(response, dict) and "results" in response:
        return {
            "data": response.get("results") or [],
            "meta": {"pagination": response.get("pagination") or {}},
        }
    if isinstance(response, dict) and "data" in response:
        data = response["data"]
        if not isinstance(data, list):
            data = [data] if data else []
        return {"data": [d for d in data if not (isinstance(d, dict) and d.get("error"))],
                "meta": response.get("meta") or {}}
    if isinstance(response, list):
        total = len(response)
        return {
            "data": response,
            "meta": {"pagination": {"page": 1, "pageSize": total, "pageCount": 1, "total": total}},
        }
    return {"data": [], "meta": {}}


def _content_type_row(ct):
    uid = ct.get("uid", "")
    schema = ct.get("schema") or {}
    info = ct.get("info") or schema.get("info") or {}
    api_id = ct.get("apiID") or uid.split(".")[-1]
    plural = ct.get("pluralApiId") or info.get("pluralName") or schema.get("pluralName")
    plural = plural or f"{api_id}s"
    plugin_options = ct.get("pluginOptions") or schema.get("pluginOptions") or {}
    return {
        "uid": uid,
        "apiID": api_id,
        "pluralApiId": plural,
        "info": {
            "displayName": info.get("displayName") or schema.get("displayName") or api_id,
            "description": info.get("description") or schema.get("description"),
            "singularName": info.get("singularName") or schema.get("singularName"),
            "pluralName": info.get("pluralName") or schema.get("pluralName"),
        },
        "attributes": ct.get("attributes") or schema.get("attributes") or {},
        "pluginOptions": plugin_options,
        "isLocalized": bool((plugin_options.get("i18n") or {}).get("localized")),
    }


def _schema_attribute_ops(existing, updates, remove=()):
    """Build update-schema attribute actions preserving existing fields."""
    ops = []
    for name, props in existing.items():
        if name in _SYSTEM_COMPONENT_FIELDS or name in remove:
            continue
        merged = {**props, **updates[name]} if name in updates else props
        ops.append({"action": "update", "name": name, "properties": merged})
    for name, props in updates.items():
        if name not in existing and name not in _SYSTEM_COMPONENT_FIELDS:
            ops.append({"action": "create", "name": name, "properties": props})
    for name in remove:
        if name in existing:
            ops.append({"action": "delete", "name": name})
    return ops


class StrapiClient:
    """Async client for one Strapi instance.

    Args:
        settings: AuthSettings; defaults to a snapshot of strapi_mcp.config.
        http: Preconfigured httpx.AsyncClient (tests pass one with a MockTransport).
        session: Session to share; a fresh one by default.
        sleep: Awaitable sleep used for backoff and health polling.
        token_cache: TokenCache, or None to follow STRAPI_TOKEN_CACHE.
        dev_mode: Wait for Strapi to restart after schema changes.
        validate: Reject configurations with no usable credential.
    """

    def __init__(
        self,
        settings=None,
        *,
        http=None,
        session=None,
        sleep=asyncio.sleep,
        token_cache=None,
        dev_mode=None,
        validate=True,
    ):
        self.settings = settings or config.auth_settings()
        if validate:
            config.validate_credentials(self.settings)
        self._http = http or httpx.AsyncClient(
            base_url=self.settings.base_url, timeout=self.settings.timeout
        )
        self._sleep = sleep
        self.dev_mode = config.DEV_MODE if dev_mode is None else dev_mode
        if token_cache is None and config.TOKEN_CACHE_ENABLED:
            token_cache = TokenCache(config.TOKEN_CACHE_PATH, config.TOKEN_CACHE_TTL_SECONDS)
        self._token_cache = token_cache
        self.session = session or Session()
        if self._token_cache is not None and self.session.token is None:
            cached = self._token_cache.load()
            if cached:
                self.session.store(cached)
        self.authenticator = Authenticator(
            self._http, self.session, self.settings, sleep=sleep, token_cache=self._token_cache
        )
        self.admin = RequestDispatcher(self._http, self.session, self.authenticator)
        self.public = PublicApi(self._http, self.settings.api_token)
        self.selector = SurfaceSelector(self.settings)
        self._uid_by_plural: dict[str, str] | None = None

    async def aclose(self):
        await self._http.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.aclose()

    # -- auth core --------------------------------------------------------

    async def login_to_admin(self) -> bool:
        return await self.authenticator.login()

    async def make_admin_api_request(self, endpoint, method="GET", body=None, params=None):
        return await self.admin.request(endpoint, method, body=body, params=params)

    def get_token(self) -> str | None:
        return self.session.token

    def clear_token(self) -> None:
        self.session.invalidate()
        if self._token_cache is not None:
            self._token_cache.clear()

    async def clear_token_cache(self) -> dict[str, Any]:
        """Forget the admin JWT in memory and on disk; the next admin call logs in."""
        self.clear_token()
        _log_event("CACHE", phase="cleared", cache_enabled=self._token_cache is not None)
        return {"cleared": True, "cacheEnabled": self._token_cache is not None}

    async def _run(self, name, *, admin=None, public=None, privileged=False):
        outcome = await self.selector.run(
            Operation(name, admin=admin, public=public, privileged=privileged)
        )
        return outcome.result

    # -- connection ---------------------------------------------------------

    async def check_health(self) -> HealthResult:
        try:
            response = await self._http.get("/_health", timeout=5.0)
        except httpx.ConnectError:
            return {"status": "unhealthy", "message": "Connection refused, is Strapi running?"}
        except httpx.HTTPError:
            return {"status": "unhealthy", "message": "Failed to connect to Strapi"}
        if response.status_code in (200, 204):
            return {"status": "healthy"}
        if response.status_code == 503:
            return {"status": "reloading", "message": "Strapi is restarting"}
        return {"status": "unhealthy", "message": f"Health check returned {response.status_code}"}

    async def wait_for_healthy(self, max_polls=15, interval=2.0) -> HealthResult:
        """Poll /_health until Strapi is back after a schema-triggered restart."""
        await self._sleep(1.0)
        health = await self.check_health()
        if health["status"] == "healthy":
            return health
        for _ in range(max_polls):
            await self._sleep(interval)
            health = await self.check_health()
            if health["status"] == "healthy":
                return health
        raise StrapiError("[ERROR] Strapi did not become healthy within the timeout period.")

    async def validate_connection(self) -> ConnectionResult:
        async def via_admin():
            await self.admin.request("/admin/users/me")
            return "admin credentials"

        async def via_public():
            await self.public.request("/api/upload/files", params={"pagination": {"pageSize": 1}})
            return "API token"

        outcome = await self.selector.run(
            Operation("validate_connection", admin=via_admin, public=via_public)
        )
        return {"ok": True, "auth_method": outcome.result, "surface": outcome.surface}

    # -- content types ------------------------------------------------------

    async def list_content_types(self) -> list[ContentTypeRow]:
        async def via_admin():
            response = await self.admin.request("/content-type-builder/content-types")
            rows = [
                _content_type_row(ct)
                for ct in (_unwrap(response) or [])
                if isinstance(ct, dict) and str(ct.get("uid", "")).startswith("api::")
            ]
            self._uid_by_plural = {r["pluralApiId"]: r["uid"] for r in rows}
            return rows

        async def via_public():
            found = []
            for plural in _DISCOVERY_CANDIDATES:
                try:
                    response = await self.public.request(
                        f"/api/{plural}", params={"pagination": {"pageSize": 1}}
                    )
                except StrapiError:
                    continue
                sample = _rest_list(response)["data"]
                uid = guess_uid(plural)
                row = _content_type_row({"uid": uid, "pluralApiId": plural})
                if sample:
                    row["attributes"] = infer_schema_from_entry(uid, sample[0])["attributes"]
                found.append(row)
            return found

        return await self._run("list_content_types", admin=via_admin, public=via_public)

    async def _resolve_uid(self, plural_api_id):
        """Map a plural API id to its content-type UID via the builder API."""
        if "::" in plural_api_id:
            return plural_api_id
        if self._uid_by_plural is None:
            response = await self.admin.request("/content-type-builder/content-types")
            self._uid_by_plural = {}
            for ct in _unwrap(response) or []:
                if isinstance(ct, dict) and str(ct.get("uid", "")).startswith("api::"):
                    row = _content_type_row(ct)
                    self._uid_by_plural[row["pluralApiId"]] = row["uid"]
        return self._uid_by_plural.get(plural_api_id) or guess_uid(plural_api_id)

    async def get_content_type_schema(self, content_type, plural_api_id=None) -> dict[str, Any]:
        async def via_admin():
            response = await self.admin.request(
                f"/content-type-builder/content-types/{content_type}"
            )
            return _unwrap(response)

        async def via_public():
            plural = plural_api_id or f"{content_type.split('.')[-1]}s"
            response = await self.public.request(
                f"/api/{plural}", params={"pagination": {"pageSize": 1}}
            )
            sample = _rest_list(response)["data"]
            if not sample:
                raise StrapiError(
                    f"[ERROR] Cannot infer schema for {content_type}: collection {plural} is empty."
                )
            return infer_schema_from_entry(content_type, sample[0])

        return await self._run("get_content_type_schema", admin=via_admin, public=via_public)

    # -- entries ------------------------------------------------------------

    async def get_entries(self, plural_api_id, options=None) -> EntryListResult:
        params = dict(options or {})
        if params.get("status") == "all":
            params.pop("status")

        async def via_admin():
            uid = await self._resolve_uid(plural_api_id)
            return _rest_list(await self.admin.request(_collection_path(uid), params=params))

        async def via_public():
            return _rest_list(await self.public.request(f"/api/{plural_api_id}", params=params))

        return await self._run("get_entries", admin=via_admin, public=via_public)

    async def get_entry(self, plural_api_id, document_id, options=None) -> dict[str, Any]:
        params = dict(options or {})

        async def via_admin():
            uid = await self._resolve_uid(plural_api_id)
            path = _collection_path(uid, document_id)
            return _unwrap(await self.admin.request(path, params=params))

        async def via_public():
            return _unwrap(
                await self.public.request(f"/api/{plural_api_id}/{document_id}", params=params)
            )

        return await self._run("get_entry", admin=via_admin, public=via_public)

    async def create_entry(
        self, content_type, plural_api_id, data, *, publish=False, locale=None
    ) -> dict[str, Any]:
        """Create an entry after checking required fields and dynamic zones."""
        schema = await self.get_content_type_schema(content_type, plural_api_id)
        attributes = attributes_as_dict((schema.get("schema") or schema).get("attributes"))
        data = ensure_slug_field(data, attributes)
        if not schema.get("inferred"):
            missing = missing_required_fields(data, attributes)
            if missing:
                hint = "\n".join(f"- {name} (type: {kind})" for name, kind in missing)
                raise StrapiError(
                    f"[ERROR] Missing required fields in data object:\n{hint}\n"
                    f"Current data only includes: {', '.join(data) or 'nothing'}"
                )
            zone_errors = dynamic_zone_errors(data, attributes)
            if zone_errors:
                raise StrapiError(
                    "[ERROR] Dynamic zone validation failed:\n" + "\n".join(zone_errors)
                )
        params = {"locale": locale} if locale else {}

        async def via_admin():
            path = _collection_path(content_type, action="publish" if publish else None)
            return _unwrap(await self.admin.request(path, "POST", body=data, params=params))

        async def via_public():
            public_params = dict(params)
            if publish:
                public_params["status"] = "published"
            return _unwrap(
                await self.public.request(
                    f"/api/{plural_api_id}", "POST", body={"data": data}, params=public_params
                )
            )

        return await self._run("create_entry", admin=via_admin, public=via_public)

    async def update_entry(
        self, plural_api_id, document_id, data, *, locale=None
    ) -> dict[str, Any]:
        data = clean_entry_for_update(data)
        params = {"locale": locale} if locale else {}

        async def via_admin():
            uid = await self._resolve_uid(plural_api_id)
            return _unwrap(
                await self.admin.request(
                    _collection_path(uid, document_id), "PUT", body=data, params=params
                )
            )

        async def via_public():
            return _unwrap(
                await self.public.request(
                    f"/api/{plural_api_id}/{document_id}", "PUT", body={"data": data}, params=params
                )
            )

        return await self._run("update_entry", admin=via_admin, public=via_public)

    async def delete_entry(self, plural_api_id, document_id, *, locale=None) -> dict[str, Any]:
        params = {"locale": locale} if locale else {}

        async def via_admin():
            uid = await self._resolve_uid(plural_api_id)
            await self.admin.request(_collection_path(uid, document_id), "DELETE", params=params)

        async def via_public():
            await self.public.request(
                f"/api/{plural_api_id}/{document_id}", "DELETE", params=params
            )

        await self._run("delete_entry", admin=via_admin, public=via_public)
        return {"deleted": True, "documentId": document_id}

    async def delete_all_entries(self, plural_api_id, *, confirm=False) -> dict[str, Any]:
        """Delete every entry of a collection. Irreversible; needs ``confirm=True``.

        Re-reads the first page each pass, since deleting shifts later pages.
        Entries that fail to delete are reported once and not retried.
        """
        if confirm is not True:
            raise StrapiError(
                "[ERROR] Deletion not confirmed. Set confirm_deletion to true to delete "
                f"all entries of {plural_api_id}."
            )
        deleted = 0
        failed: list[dict[str, str]] = []
        seen: set[str] = set()
        while True:
            page = await self.get_entries(
                plural_api_id, {"pagination": {"page": 1, "pageSize": _DELETE_PAGE_SIZE}}
            )
            pending = [
                e.get("documentId") for e in page.get("data") or []
                if isinstance(e, dict) and e.get("documentId")
                and e.get("documentId") not in seen
            ]
            if not pending:
                break
            seen.update(pending)
            for document_id in pending:
                try:
                    await self.delete_entry(plural_api_id, document_id)
                    deleted += 1
                except StrapiError as e:
                    failed.append({"documentId": document_id, "error": str(e)})
        _log_event("CONTENT", phase="delete_all", plural_api_id=plural_api_id,
                   deleted=deleted, failed=len(failed))
        return {"deletedCount": deleted, "failed": failed}

    async def publish_entry(self, plural_api_id, document_id, *, locale=None) -> dict[str, Any]:
        params = {"locale": locale} if locale else {}

        async def via_admin():
            uid = await self._resolve_uid(plural_api_id)
            return _unwrap(
                await self.admin.request(
                    _collection_path(uid, document_id, "publish"), "POST", params=params
                )
            )

        async def via_public():
            return _unwrap(
                await self.public.request(
                    f"/api/{plural_api_id}/{document_id}",
                    "PUT",
                    body={"data": {}},
                    params={**params, "status": "published"},
                )
            )

        return await self._run("publish_entry", admin=via_admin, public=via_public)

    async def unpublish_entry(self, plural_api_id, document_id, *, locale=None) -> dict[str, Any]:
        params = {"locale": locale} if locale else {}

        async def via_admin():
            uid = await self._resolve_uid(plural_api_id)
            return _unwrap(
                await self.admin.request(
                    _collection_path(uid, document_id, "unpublish"), "POST", params=params
                )
            )

        # The public REST API has no unpublish action.
        return await self._run("unpublish_entry", admin=via_admin, privileged=True)

    # -- relations ----------------------------------------------------------

    async def connect_relation(self, plural_api_id, document_id, field, related_ids):
        items = [{"documentId": rid} for rid in related_ids]
        return await self.update_entry(plural_api_id, document_id, {field: {"connect": items}})

    async def disconnect_relation(self, plural_api_id, document_id, field, related_ids):
        items = [{"documentId": rid} for rid in related_ids]
        return await self.update_entry(plural_api_id, document_id, {field: {"disconnect": items}})

    async def set_relation(self, plural_api_id, document_id, field, related_ids):
        return await self.update_entry(plural_api_id, document_id, {field: list(related_ids)})

    # -- dynamic-zone sections ----------------------------------------------

    async def _edit_sections(self, plural_api_id, document_id, zone_field, edit, *,
                             locale=None, publish=True):
        """Rewrite one dynamic zone of an entry, leaving its other fields untouched."""
        options = {"populate": "*"}
        if locale:
            options["locale"] = locale
        entry = await self.get_entry(plural_api_id, document_id, options)
        if not isinstance(entry, dict):
            raise StrapiError(f"[ERROR] Entry with documentId {document_id} not found.")
        sections = entry.get(zone_field)
        if not isinstance(sections, list):
            raise StrapiError(
                f"[ERROR] Field '{zone_field}' is not a dynamic zone or does not exist."
            )
        body = clean_entry_for_update(entry)
        body[zone_field] = edit(sections)
        result = await self.update_entry(plural_api_id, document_id, body, locale=locale)
        if publish:
            result = await self.publish_entry(plural_api_id, document_id, locale=locale)
        return result

    async def add_section(self, plural_api_id, document_id, zone_field, section, *,
                          position=None, locale=None, publish=True):
        return await self._edit_sections(
            plural_api_id, document_id, zone_field,
            lambda sections: insert_section(sections, section, position),
            locale=locale, publish=publish,
        )

    async def update_section(self, plural_api_id, document_id, zone_field, index, section, *,
                             locale=None, publish=True):
        return await self._edit_sections(
            plural_api_id, document_id, zone_field,
            lambda sections: replace_section(sections, index, section),
            locale=locale, publish=publish,
        )

    async def delete_section(self, plural_api_id, document_id, zone_field, index, *,
                             locale=None, publish=True):
        return await self._edit_sections(
            plural_api_id, document_id, zone_field,
            lambda sections: remove_section(sections, index),
            locale=locale, publish=publish,
        )

    async def reorder_section(self, plural_api_id, document_id, zone_field, from_index,
                              to_index, *, locale=None, publish=True):
        return await self._edit_sections(
            plural_api_id, document_id, zone_field,
            lambda sections: move_section(sections, from_index, to_index),
            locale=locale, publish=publish,
        )

    # -- media --------------------------------------------------------------

    async def list_media(self, params=None) -> Any:
        async def via_admin():
            return await self.admin.request("/upload/files", params=params)

        async def via_public():
            return await self.public.request("/api/upload/files", params=params)

        return filter_base64(await self._run("list_media", admin=via_admin, public=via_public))

    async def list_media_folders(self, params=None) -> Any:
        async def via_admin():
            return await self.admin.request("/upload/folders", params=params)

        return await self._run("list_media_folders", admin=via_admin, privileged=True)

    async def _upload(self, content, file_name, file_type):
        files = {"files": (file_name, content, file_type)}
        data = {"fileInfo": json.dumps({"name": file_name, "folder": None})}

        async def via_admin():
            return await self.admin.request("/upload", "POST", files=files, data=data)

        async def via_public():
            return await self.public.request("/api/upload", "POST", files=files, data=data)

        result = await self._run("upload_media", admin=via_admin, public=via_public)
        if isinstance(result, list):
            result = result[0] if result else {}
        return filter_base64(result)

    async def upload_media(self, file_data, file_name, file_type) -> dict[str, Any]:
        """Upload a base64-encoded file (about 750KB decoded at most)."""
        if len(file_data) > _MAX_BASE64_CHARS:
            size_mb = len(file_data) * 3 / 4 / (1024 * 1024)
            raise StrapiError(
                f"[ERROR] File too large: ~{size_mb:.2f}MB. Maximum ~0.75MB for base64 upload; "
                "use upload_media_from_path instead."
            )
        if not _BASE64_RE.match(file_data):
            raise StrapiError("[ERROR] Invalid base64 data.")
        try:
            content = base64.b64decode(file_data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise StrapiError("[ERROR] Invalid base64 data.") from e
        return await self._upload(content, file_name, file_type)

    async def upload_media_from_path(self, file_path, file_name=None, file_type=None):
        if not os.path.isfile(file_path):
            raise StrapiError(f"[ERROR] File not found: {file_path}")
        size = os.path.getsize(file_path)
        if size > _MAX_UPLOAD_BYTES:
            raise StrapiError(
                f"[ERROR] File too large: {size / (1024 * 1024):.2f}MB. Maximum 10MB."
            )
        file_name = file_name or os.path.basename(file_path)
        file_type = file_type or mimetypes.guess_type(file_path)[0] or "application/octet-stream"
        with open(file_path, "rb") as f:
            content = f.read()
        return await self._upload(content, file_name, file_type)

    # -- components (admin only) -------------------------------------------

    async def list_components(self) -> list[ComponentRow]:
        async def via_admin():
            response = await self.admin.request("/content-type-builder/components")
            rows = []
            for comp in _unwrap(response) or []:
                schema = comp.get("schema") or {}
                info = schema.get("info") or comp.get("info") or {}
                rows.append(
                    {
                        "uid": comp.get("uid"),
                        "category": comp.get("category") or str(comp.get("uid", "")).split(".")[0],
                        "displayName": info.get("displayName") or schema.get("displayName")
                        or comp.get("uid"),
                        "description": info.get("description") or schema.get("description"),
                        "icon": info.get("icon") or schema.get("icon"),
                        "attributes": schema.get("attributes") or comp.get("attributes") or {},
                    }
                )
            return rows

        return await self._run("list_components", admin=via_admin, privileged=True)

    async def get_component_schema(self, component_uid) -> dict[str, Any]:
        async def via_admin():
            return _unwrap(
                await self.admin.request(f"/content-type-builder/components/{component_uid}")
            )

        return await self._run("get_component_schema", admin=via_admin, privileged=True)

    async def _update_schema(self, name, payload):
        async def via_admin():
            return await self.admin.request(
                "/content-type-builder/update-schema", "POST", body={"data": payload}
            )

        result = await self._run(name, admin=via_admin, privileged=True)
        self._uid_by_plural = None
        if self.dev_mode:
            await self.wait_for_healthy()
        return result

    async def create_component(
        self, display_name, category, attributes, *, icon="brush", description=""
    ) -> dict[str, Any]:
        name = display_name.lower().replace(" ", "-")
        uid = f"{category}.{name}"
        payload = {
            "components": [
                {
                    "action": "create",
                    "uid": uid,
                    "category": category,
                    "icon": icon,
                    "displayName": display_name,
                    "description": description,
                    "collectionName": "components_{}_{}".format(
                        category.replace("-", "_"), name.replace("-", "_")
                    ),
                    "attributes": _schema_attribute_ops({}, attributes),
                }
            ],
            "contentTypes": [],
        }
        await self._update_schema("create_component", payload)
        return {"uid": uid}

    async def update_component(self, component_uid, attributes) -> dict[str, Any]:
        current = await self.get_component_schema(component_uid)
        schema = current.get("schema") or current
        info = schema.get("info") or {}
        payload = {
            "components": [
                {
                    "action": "update",
                    "uid": component_uid,
                    "category": schema.get("category") or component_uid.split(".")[0],
                    "icon": info.get("icon") or schema.get("icon") or "brush",
                    "displayName": info.get("displayName") or schema.get("displayName"),
                    "description": info.get("description") or schema.get("description") or "",
                    "collectionName": schema.get("collectionName"),
                    "attributes": _schema_attribute_ops(
                        attributes_as_dict(schema.get("attributes")), attributes
                    ),
                }
            ],
            "contentTypes": [],
        }
        return _unwrap(await self._update_schema("update_component", payload))

    # -- content-type builder (admin only) -----------------------------------

    async def create_content_type(
        self,
        display_name,
        singular_name,
        plural_name,
        attributes,
        *,
        kind="collectionType",
        draft_and_publish=True,
        description="",
        plugin_options=None,
    ) -> dict[str, Any]:
        singular = singular_name.lower().replace(" ", "-")
        plural = plural_name.lower().replace(" ", "-")
        uid = f"api::{singular}.{singular}"
        payload = {
            "components": [],
            "contentTypes": [
                {
                    "action": "create",
                    "uid": uid,
                    "modelName": singular,
                    "kind": kind,
                    "globalId": display_name.replace(" ", ""),
                    "pluginOptions": plugin_options or {},
                    "collectionName": plural,
                    "modelType": "contentType",
                    "attributes": _schema_attribute_ops({}, attributes),
                    "status": "NEW",
                    "draftAndPublish": draft_and_publish,
                    "singularName": singular,
                    "pluralName": plural,
                    "displayName": display_name,
                    "description": description,
                }
            ],
        }
        result = _unwrap(await self._update_schema("create_content_type", payload))
        if isinstance(result, dict) and result.get("uid"):
            return result
        return {"uid": uid}

    async def update_content_type(
        self, content_type, attributes, *, remove_attributes=(), plugin_options=None
    ) -> dict[str, Any]:
        """Merge attribute changes into a content type; existing fields are kept.

        Removing more than one attribute per call is refused to limit data loss.
        """
        remove = list(remove_attributes)
        if len(remove) > 1:
            raise StrapiError(
                f"[ERROR] SAFETY BLOCK: this update would delete {len(remove)} attributes "
                f"({', '.join(remove)}). Remove attributes one at a time."
            )
        current = await self.get_content_type_schema(content_type)
        schema = current.get("schema") or current
        if schema.get("inferred"):
            raise StrapiError("[ERROR] Cannot update a schema that could only be inferred.")
        model = content_type.split(".")[-1]
        payload = {
            "components": [],
            "contentTypes": [
                {
                    "action": "update",
                    "uid": content_type,
                    "modelName": model,
                    "kind": schema.get("kind") or "collectionType",
                    "globalId": schema.get("globalId") or model.capitalize(),
                    "pluginOptions": {
                        **(schema.get("pluginOptions") or {}),
                        **(plugin_options or {}),
                    },
                    "collectionName": schema.get("collectionName") or f"{model}s",
                    "modelType": "contentType",
                    "attributes": _schema_attribute_ops(
                        attributes_as_dict(schema.get("attributes")), attributes, remove
                    ),
                    "status": "CHANGED",
                    "draftAndPublish": schema.get("draftAndPublish") is not False,
                    "singularName": schema.get("singularName") or model,
                    "pluralName": schema.get("pluralName") or f"{model}s",
                    "displayName": schema.get("displayName") or model.capitalize(),
                    "description": schema.get("description") or "",
                }
            ],
        }
        if remove:
            _log_event("SCHEMA", phase="delete_attribute", uid=content_type, attribute=remove[0])
        return _unwrap(await self._update_schema("update_content_type", payload))

    async def delete_content_type(self, content_type) -> dict[str, Any]:
        payload = {
            "components": [],
            "contentTypes": [{"action": "delete", "uid": content_type}],
        }
        await self._update_schema("delete_content_type", payload)
        return {"deleted": True, "uid": content_type}

    # -- i18n ---------------------------------------------------------------

    async def list_locales(self) -> Any:
        async def via_admin():
            return await self.admin.request("/i18n/locales")

        async def via_public():
            return await self.public.request("/api/i18n/locales")

        return await self._run("list_locales", admin=via_admin, public=via_public)

    async def create_locale(self, code, name=None, *, is_default=False) -> Any:
        body = {"code": code, "name": name or f"{code}", "isDefault": is_default}

        async def via_admin():
            return await self.admin.request("/i18n/locales", "POST", body=body)

        return await self._run("create_locale", admin=via_admin, privileged=True)

    async def delete_locale(self, locale_id) -> dict[str, Any]:
        async def via_admin():
            return await self.admin.request(f"/i18n/locales/{locale_id}", "DELETE")

        await self._run("delete_locale", admin=via_admin, privileged=True)
        return {"deleted": True, "id": locale_id}

    # -- API tokens (admin only) --------------------------------------------

    async def list_api_tokens(self) -> Any:
        async def via_admin():
            return _unwrap(await self.admin.request("/admin/api-tokens"))

        return await self._run("list_api_tokens", admin=via_admin, privileged=True)

    async def create_api_token(
        self, name, *, description="", token_type="read-only", lifespan=None
    ) -> Any:
        body = {
            "name": name,
            "description": description,
            "type": token_type,
            "lifespan": lifespan,
            "permissions": None,
        }

        async def via_admin():
            return _unwrap(await self.admin.request("/admin/api-tokens", "POST", body=body))

        return await self._run("create_api_token", admin=via_admin, privileged=True)

    async def delete_api_token(self, token_id) -> dict[str, Any]:
        async def via_admin():
            return await self.admin.request(f"/admin/api-tokens/{token_id}", "DELETE")

        await self._run("delete_api_token", admin=via_admin, privileged=True)
        return {"deleted": True, "id": token_id}

    # -- direct access ------------------------------------------------------

    async def strapi_rest(self, endpoint, method="GET", params=None, body=None) -> Any:
        """Raw call. Admin path families need admin credentials; /api/ paths
        are tried through the Content-Manager first when admin is configured."""
        if not endpoint.startswith("/"):
            endpoint = "/" + endpoint
        method = method.upper()
        if endpoint.startswith(_ADMIN_PREFIXES):

            async def via_admin_raw():
                return await self.admin.request(endpoint, method, body=body, params=params)

            return await self._run("strapi_rest", admin=via_admin_raw, privileged=True)

        match = _REST_PATH_RE.match(endpoint)

        async def via_admin():
            uid = await self._resolve_uid(match.group(1))
            admin_body = body.get("data", body) if isinstance(body, dict) else body
            response = await self.admin.request(
                _collection_path(uid, match.group(2)), method, body=admin_body, params=params
            )
            if isinstance(response, dict) and "results" in response:
                return _rest_list(response)
            return {"data": _unwrap(response), "meta": {}}

        async def via_public():
            return await self.public.request(endpoint, method, body=body, params=params)

        return await self._run(
            "strapi_rest", admin=via_admin if match else None, public=via_public
        )
