"""Schema tools: components and content-type builder, plus schema resources.

Read tools are always registered. Tools that rewrite the schema restart
Strapi, so they are only registered when STRAPI_DEV_MODE is on.
"""

from __future__ import annotations

import json
from typing import Any, Literal

from strapi_mcp import config
from strapi_mcp.mcp_server._core import _call, _contract_error, _finalize_tool_result


async def list_components() -> list | dict:
    """List components with uid, category, displayName and attributes. Admin only."""
    return _finalize_tool_result(await _call("list_components"))


async def get_component_schema(component_uid: str) -> dict:
    """Get a component's schema, e.g. component_uid='shared.seo'. Admin only."""
    return _finalize_tool_result(await _call("get_component_schema", component_uid=component_uid))


async def create_component(
    display_name: str,
    category: str,
    attributes: dict[str, Any],
    icon: str = "brush",
    description: str = "",
) -> dict:
    """Create a component. Strapi restarts afterwards.

    Args:
        attributes: {field_name: {type, required, ...}}.
    """
    if not attributes:
        return _finalize_tool_result(
            _contract_error("[ERROR] attributes must define at least one field.", "error")
        )
    return _finalize_tool_result(
        await _call(
            "create_component",
            display_name=display_name,
            category=category,
            attributes=attributes,
            icon=icon,
            description=description,
        )
    )


async def update_component(component_uid: str, attributes: dict[str, Any]) -> dict:
    """Add or change component attributes; existing attributes are kept."""
    return _finalize_tool_result(
        await _call("update_component", component_uid=component_uid, attributes=attributes)
    )


async def create_content_type(
    display_name: str,
    singular_name: str,
    plural_name: str,
    attributes: dict[str, Any],
    kind: Literal["collectionType", "singleType"] = "collectionType",
    draft_and_publish: bool = True,
    description: str = "",
) -> dict:
    """Create a content type (uid api::<singular>.<singular>). Strapi restarts afterwards."""
    if not attributes:
        return _finalize_tool_result(
            _contract_error("[ERROR] attributes must define at least one field.", "error")
        )
    return _finalize_tool_result(
        await _call(
            "create_content_type",
            display_name=display_name,
            singular_name=singular_name,
            plural_name=plural_name,
            attributes=attributes,
            kind=kind,
            draft_and_publish=draft_and_publish,
            description=description,
        )
    )


async def update_content_type(
    content_type: str,
    attributes: dict[str, Any],
    remove_attributes: list[str] | None = None,
) -> dict:
    """Add or change attributes of a content type; unlisted attributes are kept.

    Args:
        remove_attributes: At most one attribute name to delete (data loss!).
    """
    return _finalize_tool_result(
        await _call(
            "update_content_type",
            content_type=content_type,
            attributes=attributes,
            remove_attributes=remove_attributes or [],
        )
    )


async def delete_content_type(content_type: str) -> dict:
    """Delete a content type and all of its entries."""
    return _finalize_tool_result(await _call("delete_content_type", content_type=content_type))


async def content_type_resource(uid: str) -> str:
    """Schema of one content type as JSON."""
    result = await _call("get_content_type_schema", content_type=uid)
    return json.dumps(result, indent=2, default=str)


def register(mcp):
    """Register schema tools; mutating ones only in dev mode."""
    mcp.tool()(list_components)
    mcp.tool()(get_component_schema)
    mcp.resource("strapi://content-type/{uid}", mime_type="application/json")(
        content_type_resource
    )
    if not config.DEV_MODE:
        return
    mcp.tool()(create_component)
    mcp.tool()(update_component)
    mcp.tool()(create_content_type)
    mcp.tool()(update_content_type)
    mcp.tool()(delete_content_type)
