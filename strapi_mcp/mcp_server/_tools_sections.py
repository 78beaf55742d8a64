"""Dynamic-zone section tools: add, update, delete, reorder (4 tools).

Each tool reads the entry, edits one dynamic zone and writes the entry back,
so the other sections and fields are left as they are.
"""

from __future__ import annotations

from typing import Any

from strapi_mcp.mcp_server._core import _call, _finalize_tool_result


async def entry_section_add(
    plural_api_id: str,
    document_id: str,
    zone_field: str,
    section: dict[str, Any],
    position: int | None = None,
    locale: str | None = None,
    publish: bool = True,
) -> dict:
    """Insert a section into a dynamic zone.

    Args:
        plural_api_id: e.g. 'pages'.
        zone_field: Dynamic zone attribute, e.g. 'sections'.
        section: Section data including __component (e.g. 'blocks.hero').
        position: 0-based index; appended when omitted.
        publish: Publish the entry after the update (default true).
    """
    return _finalize_tool_result(
        await _call(
            "add_section",
            plural_api_id=plural_api_id,
            document_id=document_id,
            zone_field=zone_field,
            section=section,
            position=position,
            locale=locale,
            publish=publish,
        )
    )


async def entry_section_update(
    plural_api_id: str,
    document_id: str,
    zone_field: str,
    section_index: int,
    section: dict[str, Any],
    locale: str | None = None,
    publish: bool = True,
) -> dict:
    """Replace the section at section_index (0-based). section needs __component."""
    return _finalize_tool_result(
        await _call(
            "update_section",
            plural_api_id=plural_api_id,
            document_id=document_id,
            zone_field=zone_field,
            index=section_index,
            section=section,
            locale=locale,
            publish=publish,
        )
    )


async def entry_section_delete(
    plural_api_id: str,
    document_id: str,
    zone_field: str,
    section_index: int,
    locale: str | None = None,
    publish: bool = True,
) -> dict:
    """Remove the section at section_index (0-based)."""
    return _finalize_tool_result(
        await _call(
            "delete_section",
            plural_api_id=plural_api_id,
            document_id=document_id,
            zone_field=zone_field,
            index=section_index,
            locale=locale,
            publish=publish,
        )
    )


async def entry_section_reorder(
    plural_api_id: str,
    document_id: str,
    zone_field: str,
    from_index: int,
    to_index: int,
    locale: str | None = None,
    publish: bool = True,
) -> dict:
    """Move a section from from_index to to_index (both 0-based)."""
    return _finalize_tool_result(
        await _call(
            "reorder_section",
            plural_api_id=plural_api_id,
            document_id=document_id,
            zone_field=zone_field,
            from_index=from_index,
            to_index=to_index,
            locale=locale,
            publish=publish,
        )
    )


def register(mcp):
    """Register all section tools with the FastMCP instance."""
    mcp.tool()(entry_section_add)
    mcp.tool()(entry_section_update)
    mcp.tool()(entry_section_delete)
    mcp.tool()(entry_section_reorder)
