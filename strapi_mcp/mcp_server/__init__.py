"""MCP server exposing StrapiClient methods as tools.

Package structure:
  __init__.py        — FastMCP init, register() calls, re-exports
  __main__.py        — ``python -m strapi_mcp.mcp_server`` entry point
  _core.py           — Client caching, _call dispatcher, response contract, tool log
  _tools_content.py  — 13 content-type/entry/relation tools
  _tools_sections.py — 4 dynamic-zone section tools
  _tools_schema.py   — component and content-type builder tools, schema resource
  _tools_media.py    — 4 media library tools
  _tools_admin.py    — 10 locale/API-token/connection/raw REST tools

Run: python -m strapi_mcp.mcp_server
"""

from __future__ import annotations

from mcp.server.fastmcp import FastMCP

from strapi_mcp import config
from strapi_mcp.mcp_server import (
    _tools_admin,
    _tools_content,
    _tools_media,
    _tools_schema,
    _tools_sections,
)

mcp = FastMCP(
    config.SERVER_NAME,
    instructions=(
        "Strapi CMS content management tools. "
        "Call list_content_types first: entry tools take the pluralApiId "
        "(e.g. 'articles') and entries are addressed by documentId. "
        "Query options are JSON objects using Strapi REST params "
        "(filters, pagination, sort, populate, fields, locale, status). "
        "Errors with type 'privilege_required' mean the operation needs admin "
        "credentials; do not retry them with the API token. "
        "Schema-changing tools restart Strapi and are only present in dev mode."
    ),
)

for _mod in [_tools_content, _tools_sections, _tools_schema, _tools_media, _tools_admin]:
    _mod.register(mcp)

# ---------------------------------------------------------------------------
# Re-exports (tests import via mcp_mod.xxx)
# ---------------------------------------------------------------------------

# _core
from strapi_mcp.mcp_server._core import (  # noqa: E402, F401
    MCP_RESPONSE_MODE,
    _call,
    _client,
    _contract_error,
    _ensure_contract_dict,
    _finalize_tool_result,
    _get_client,
    _log_tool_call,
)

# _tools_admin
from strapi_mcp.mcp_server._tools_admin import (  # noqa: E402, F401
    check_health,
    clear_token_cache,
    create_api_token,
    create_locale,
    delete_api_token,
    delete_locale,
    list_api_tokens,
    list_locales,
    strapi_rest,
    validate_connection,
)

# _tools_content
from strapi_mcp.mcp_server._tools_content import (  # noqa: E402, F401
    connect_relation,
    create_entry,
    delete_all_entries,
    delete_entry,
    disconnect_relation,
    get_content_type_schema,
    get_entries,
    get_entry,
    list_content_types,
    publish_entry,
    set_relation,
    unpublish_entry,
    update_entry,
)

# _tools_sections
from strapi_mcp.mcp_server._tools_sections import (  # noqa: E402, F401
    entry_section_add,
    entry_section_delete,
    entry_section_reorder,
    entry_section_update,
)

# _tools_media
from strapi_mcp.mcp_server._tools_media import (  # noqa: E402, F401
    list_media,
    list_media_folders,
    upload_media,
    upload_media_from_path,
)

# _tools_schema
from strapi_mcp.mcp_server._tools_schema import (  # noqa: E402, F401
    content_type_resource,
    create_component,
    create_content_type,
    delete_content_type,
    get_component_schema,
    list_components,
    update_component,
    update_content_type,
)


def main():
    """Run the MCP server (stdio transport)."""
    mcp.run()
