"""Content tools: content-type discovery, entry CRUD, publishing, relations (13 tools)."""

from __future__ import annotations

from typing import Any

from strapi_mcp._utils import parse_json_option
from strapi_mcp.exceptions import StrapiError
from strapi_mcp.mcp_server._core import _call, _contract_error, _finalize_tool_result


async def list_content_types() -> list | dict:
    """List the project's content types (api::*).

    Returns:
        List of {uid, apiID, pluralApiId, info, attributes, isLocalized}.
        Use pluralApiId for the entry tools.
    """
    return _finalize_tool_result(await _call("list_content_types"))


async def get_content_type_schema(content_type: str, plural_api_id: str | None = None) -> dict:
    """Get the schema of a content type.

    Args:
        content_type: UID, e.g. api::article.article.
        plural_api_id: Used to infer the schema from a sample entry when only
            an API token is configured.
    """
    return _finalize_tool_result(
        await _call(
            "get_content_type_schema", content_type=content_type, plural_api_id=plural_api_id
        )
    )


async def get_entries(plural_api_id: str, options: str | dict | None = None) -> dict:
    """List entries of a collection.

    Args:
        plural_api_id: e.g. 'articles'.
        options: JSON object with Strapi query params: filters, pagination,
            sort, populate, fields, locale, status ('draft' | 'published').

    Returns:
        Dict with data (list) and meta.pagination.
    """
    try:
        params = parse_json_option(options, "options")
    except StrapiError as e:
        return _finalize_tool_result(_contract_error(str(e), "error"))
    return _finalize_tool_result(
        await _call("get_entries", plural_api_id=plural_api_id, options=params)
    )


async def get_entry(
    plural_api_id: str, document_id: str, options: str | dict | None = None
) -> dict:
    """Get one entry by documentId. options: JSON with populate/fields/locale."""
    try:
        params = parse_json_option(options, "options")
    except StrapiError as e:
        return _finalize_tool_result(_contract_error(str(e), "error"))
    return _finalize_tool_result(
        await _call(
            "get_entry", plural_api_id=plural_api_id, document_id=document_id, options=params
        )
    )


async def create_entry(
    content_type: str,
    plural_api_id: str,
    data: dict[str, Any],
    publish: bool = False,
    locale: str | None = None,
) -> dict:
    """Create an entry. Required fields and dynamic zones are checked first;
    a uid 'slug' field is generated from title/name when missing.

    Args:
        content_type: UID, e.g. api::article.article.
        plural_api_id: e.g. 'articles'.
        data: Field values (not wrapped in {"data": ...}).
        publish: Publish immediately instead of creating a draft.
    """
    if not isinstance(data, dict) or not data:
        return _finalize_tool_result(
            _contract_error("[ERROR] data must be a non-empty object.", "error")
        )
    return _finalize_tool_result(
        await _call(
            "create_entry",
            content_type=content_type,
            plural_api_id=plural_api_id,
            data=data,
            publish=publish,
            locale=locale,
        )
    )


async def update_entry(
    plural_api_id: str, document_id: str, data: dict[str, Any], locale: str | None = None
) -> dict:
    """Update fields of an entry. Strapi-managed fields (id, createdAt, ...) are dropped."""
    return _finalize_tool_result(
        await _call(
            "update_entry",
            plural_api_id=plural_api_id,
            document_id=document_id,
            data=data,
            locale=locale,
        )
    )


async def delete_entry(plural_api_id: str, document_id: str, locale: str | None = None) -> dict:
    """Delete an entry (all locales unless locale is given)."""
    return _finalize_tool_result(
        await _call(
            "delete_entry", plural_api_id=plural_api_id, document_id=document_id, locale=locale
        )
    )


async def delete_all_entries(plural_api_id: str, confirm_deletion: bool = False) -> dict:
    """DESTRUCTIVE: delete every entry of a collection. Cannot be undone.

    Args:
        plural_api_id: e.g. 'articles'.
        confirm_deletion: Must be true, otherwise nothing is deleted.

    Returns:
        Dict with deletedCount and failed (documentId + error per failure).
    """
    return _finalize_tool_result(
        await _call(
            "delete_all_entries", plural_api_id=plural_api_id, confirm=confirm_deletion
        )
    )


async def publish_entry(plural_api_id: str, document_id: str, locale: str | None = None) -> dict:
    """Publish the draft version of an entry."""
    return _finalize_tool_result(
        await _call(
            "publish_entry", plural_api_id=plural_api_id, document_id=document_id, locale=locale
        )
    )


async def unpublish_entry(plural_api_id: str, document_id: str, locale: str | None = None) -> dict:
    """Revert an entry to draft. Needs admin credentials."""
    return _finalize_tool_result(
        await _call(
            "unpublish_entry", plural_api_id=plural_api_id, document_id=document_id, locale=locale
        )
    )


async def connect_relation(
    plural_api_id: str, document_id: str, relation_field: str, related_ids: list[str]
) -> dict:
    """Add related entries (by documentId) to a relation field."""
    return _finalize_tool_result(
        await _call(
            "connect_relation",
            plural_api_id=plural_api_id,
            document_id=document_id,
            field=relation_field,
            related_ids=related_ids,
        )
    )


async def disconnect_relation(
    plural_api_id: str, document_id: str, relation_field: str, related_ids: list[str]
) -> dict:
    """Remove related entries (by documentId) from a relation field."""
    return _finalize_tool_result(
        await _call(
            "disconnect_relation",
            plural_api_id=plural_api_id,
            document_id=document_id,
            field=relation_field,
            related_ids=related_ids,
        )
    )


async def set_relation(
    plural_api_id: str, document_id: str, relation_field: str, related_ids: list[str]
) -> dict:
    """Replace a relation field with exactly these related documentIds."""
    return _finalize_tool_result(
        await _call(
            "set_relation",
            plural_api_id=plural_api_id,
            document_id=document_id,
            field=relation_field,
            related_ids=related_ids,
        )
    )


def register(mcp):
    """Register all content tools with the FastMCP instance."""
    mcp.tool()(list_content_types)
    mcp.tool()(get_content_type_schema)
    mcp.tool()(get_entries)
    mcp.tool()(get_entry)
    mcp.tool()(create_entry)
    mcp.tool()(update_entry)
    mcp.tool()(delete_entry)
    mcp.tool()(delete_all_entries)
    mcp.tool()(publish_entry)
    mcp.tool()(unpublish_entry)
    mcp.tool()(connect_relation)
    mcp.tool()(disconnect_relation)
    mcp.tool()(set_relation)
