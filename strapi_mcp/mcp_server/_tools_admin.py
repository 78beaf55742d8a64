"""Admin tools: locales, API tokens, connection checks, raw REST access (10 tools)."""

from __future__ import annotations

from typing import Any, Literal

from strapi_mcp._utils import parse_json_option
from strapi_mcp.exceptions import StrapiError
from strapi_mcp.mcp_server._core import _call, _contract_error, _finalize_tool_result


async def list_locales() -> list | dict:
    """List i18n locales."""
    return _finalize_tool_result(await _call("list_locales"))


async def create_locale(code: str, name: str | None = None, is_default: bool = False) -> dict:
    """Add an i18n locale such as 'fr' or 'de-CH'. Admin only."""
    return _finalize_tool_result(
        await _call("create_locale", code=code, name=name, is_default=is_default)
    )


async def delete_locale(locale_id: int) -> dict:
    """Delete an i18n locale by numeric id (see list_locales). Admin only."""
    return _finalize_tool_result(await _call("delete_locale", locale_id=locale_id))


async def list_api_tokens() -> list | dict:
    """List API tokens (metadata only). Admin only."""
    return _finalize_tool_result(await _call("list_api_tokens"))


async def create_api_token(
    name: str,
    description: str = "",
    token_type: Literal["read-only", "full-access"] = "read-only",
    lifespan_days: int | None = None,
) -> dict:
    """Create an API token. The secret is only returned once. Admin only."""
    lifespan = lifespan_days * 24 * 60 * 60 * 1000 if lifespan_days else None
    return _finalize_tool_result(
        await _call(
            "create_api_token",
            name=name,
            description=description,
            token_type=token_type,
            lifespan=lifespan,
        )
    )


async def delete_api_token(token_id: int) -> dict:
    """Revoke an API token by id. Admin only."""
    return _finalize_tool_result(await _call("delete_api_token", token_id=token_id))


async def strapi_rest(
    endpoint: str,
    method: Literal["GET", "POST", "PUT", "DELETE"] = "GET",
    params: str | dict | None = None,
    body: dict[str, Any] | None = None,
) -> Any:
    """Call a Strapi endpoint directly.

    /api/<plural>[/<documentId>] paths go through the Content-Manager when
    admin credentials are set, otherwise through the public REST API.
    Admin paths (/admin/, /content-manager/, /upload/, /i18n/, ...) need
    admin credentials.

    Args:
        params: JSON object of query params (bracket syntax is generated).
    """
    try:
        query = parse_json_option(params, "params")
    except StrapiError as e:
        return _finalize_tool_result(_contract_error(str(e), "error"))
    return _finalize_tool_result(
        await _call(
            "strapi_rest", endpoint=endpoint, method=method, params=query or None, body=body
        )
    )


async def clear_token_cache() -> dict:
    """Forget the cached admin JWT (memory and disk). The next admin call logs in again."""
    return _finalize_tool_result(await _call("clear_token_cache"))


async def check_health() -> dict:
    """Report whether Strapi is healthy, reloading, or unreachable."""
    return _finalize_tool_result(await _call("check_health"))


async def validate_connection() -> dict:
    """Verify credentials with one authenticated request; reports the surface used."""
    return _finalize_tool_result(await _call("validate_connection"))


def register(mcp):
    """Register all admin tools with the FastMCP instance."""
    mcp.tool()(list_locales)
    mcp.tool()(create_locale)
    mcp.tool()(delete_locale)
    mcp.tool()(list_api_tokens)
    mcp.tool()(create_api_token)
    mcp.tool()(delete_api_token)
    mcp.tool()(clear_token_cache)
    mcp.tool()(strapi_rest)
    mcp.tool()(check_health)
    mcp.tool()(validate_connection)
