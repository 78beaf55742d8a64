"""Core helpers: client caching, _call dispatcher, response contract, tool audit log."""

from __future__ import annotations

import json
import time

from strapi_mcp import config
from strapi_mcp.client import StrapiClient
from strapi_mcp.config import CONTRACT_SCHEMA_VERSION, MCP_RESPONSE_MODE
from strapi_mcp.exceptions import HTTPError, StrapiError

_client: StrapiClient | None = None

# Short remediation hints keyed by error type.
_HINTS = {
    "config": "Check STRAPI_URL, STRAPI_API_TOKEN and the STRAPI_ADMIN_* variables.",
    "auth": "Verify the admin email/password; Strapi may also be rate limiting logins.",
    "privilege_required": "Configure STRAPI_ADMIN_EMAIL and STRAPI_ADMIN_PASSWORD.",
}

_STATUS_HINTS = {
    400: "Strapi rejected the payload; compare it with get_content_type_schema.",
    403: "The API token lacks permission for this action.",
    404: "Check the plural API id / document id; list_content_types shows valid ids.",
    429: "Strapi is rate limiting requests; retry later.",
}


def _get_client() -> StrapiClient:
    """Return a cached StrapiClient, creating one on first use."""
    global _client
    if _client is None:
        _client = StrapiClient()
    return _client


def _contract_error(message: str, error_type: str = "error", status=None) -> dict:
    """Return a stable MCP error envelope with legacy compatibility fields."""
    detail = {"type": error_type, "message": message}
    if status is not None:
        detail["status"] = status
    hint = _STATUS_HINTS.get(status) or _HINTS.get(error_type)
    if hint:
        detail["hint"] = hint
    return {
        "ok": False,
        "schema_version": CONTRACT_SCHEMA_VERSION,
        "type": error_type,  # legacy
        "error": message,  # legacy
        "error_detail": detail,
    }


def _ensure_contract_dict(payload: dict) -> dict:
    """Add stable contract metadata to dict responses."""
    out = dict(payload)
    out.setdefault("schema_version", CONTRACT_SCHEMA_VERSION)
    if out.get("ok") is False:
        error_type = str(out.get("type", "error"))
        error_message = out.get("error", "Unknown error")
        if not isinstance(error_message, str):
            error_message = str(error_message)
            out["error"] = error_message
        out.setdefault("error_detail", {"type": error_type, "message": error_message})
        return out
    out.setdefault("ok", True)
    return out


def _finalize_tool_result(result):
    """Finalize tool response based on configured MCP response mode.

    Modes:
        - legacy (default): dicts gain contract metadata (ok/schema_version);
          lists and scalars pass through unchanged.
        - envelope: always return {"ok", "schema_version", "data"} for success.
    """
    if isinstance(result, dict):
        normalized = _ensure_contract_dict(result)
        if normalized.get("ok") is False:
            return normalized
        if MCP_RESPONSE_MODE == "envelope":
            data = dict(normalized)
            data.pop("ok", None)
            data.pop("schema_version", None)
            return {"ok": True, "schema_version": CONTRACT_SCHEMA_VERSION, "data": data}
        return normalized
    if MCP_RESPONSE_MODE == "envelope":
        return {"ok": True, "schema_version": CONTRACT_SCHEMA_VERSION, "data": result}
    return result


def _log_tool_call(method_name, ok, elapsed_ms, error_type=None):
    """Append one JSON line per tool call when STRAPI_TOOL_LOG is set."""
    path = config.TOOL_LOG_PATH
    if not path:
        return
    record = {
        "ts": time.strftime("%Y-%m-%dT%H:%M:%S"),
        "tool": method_name,
        "ok": ok,
        "elapsed_ms": elapsed_ms,
    }
    if error_type:
        record["error_type"] = error_type
    try:
        with open(path, "a", encoding="utf-8") as f:
            f.write(json.dumps(record) + "\n")
    except OSError:
        pass


_ALLOWED_METHODS = {
    "list_content_types",
    "get_content_type_schema",
    "get_entries",
    "get_entry",
    "create_entry",
    "update_entry",
    "delete_entry",
    "delete_all_entries",
    "publish_entry",
    "unpublish_entry",
    "connect_relation",
    "disconnect_relation",
    "set_relation",
    "add_section",
    "update_section",
    "delete_section",
    "reorder_section",
    "list_media",
    "list_media_folders",
    "upload_media",
    "upload_media_from_path",
    "list_components",
    "get_component_schema",
    "create_component",
    "update_component",
    "create_content_type",
    "update_content_type",
    "delete_content_type",
    "list_locales",
    "create_locale",
    "delete_locale",
    "list_api_tokens",
    "create_api_token",
    "delete_api_token",
    "clear_token_cache",
    "strapi_rest",
    "check_health",
    "validate_connection",
}


async def _call(method_name: str, **kwargs):
    """Await a StrapiClient method, converting exceptions to error dicts."""
    if method_name not in _ALLOWED_METHODS:
        return _contract_error(f"Unknown method: {method_name}", "error")
    start = time.perf_counter()
    error_type = None
    try:
        client = _get_client()
        return await getattr(client, method_name)(**kwargs)
    except HTTPError as e:
        error_type = e.error_type
        return _contract_error(str(e), e.error_type, status=e.status)
    except StrapiError as e:
        error_type = e.error_type
        return _contract_error(str(e), e.error_type, status=getattr(e, "status", None))
    except Exception as e:
        error_type = "error"
        return _contract_error(f"Unexpected error: {e}", "error")
    finally:
        elapsed = round((time.perf_counter() - start) * 1000, 2)
        _log_tool_call(method_name, error_type is None, elapsed, error_type)
