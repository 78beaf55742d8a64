"""Media tools: media library listing and uploads (4 tools)."""

from __future__ import annotations

from strapi_mcp._utils import parse_json_option
from strapi_mcp.exceptions import StrapiError
from strapi_mcp.mcp_server._core import _call, _contract_error, _finalize_tool_result


async def list_media(options: str | dict | None = None) -> list | dict:
    """List uploaded files. options: JSON with filters/sort/pagination.
    Inline base64 payloads are replaced by a placeholder."""
    try:
        params = parse_json_option(options, "options")
    except StrapiError as e:
        return _finalize_tool_result(_contract_error(str(e), "error"))
    return _finalize_tool_result(await _call("list_media", params=params or None))


async def list_media_folders() -> list | dict:
    """List media library folders. Admin only."""
    return _finalize_tool_result(await _call("list_media_folders"))


async def upload_media(file_data: str, file_name: str, file_type: str) -> dict:
    """Upload a small file given as base64 (max ~750KB decoded).

    Args:
        file_data: Base64 content without a data: prefix.
        file_type: MIME type, e.g. image/png.
    """
    return _finalize_tool_result(
        await _call("upload_media", file_data=file_data, file_name=file_name, file_type=file_type)
    )


async def upload_media_from_path(
    file_path: str, file_name: str | None = None, file_type: str | None = None
) -> dict:
    """Upload a local file (max 10MB). Name and MIME type default from the path."""
    return _finalize_tool_result(
        await _call(
            "upload_media_from_path", file_path=file_path, file_name=file_name, file_type=file_type
        )
    )


def register(mcp):
    """Register all media tools with the FastMCP instance."""
    mcp.tool()(list_media)
    mcp.tool()(list_media_folders)
    mcp.tool()(upload_media)
    mcp.tool()(upload_media_from_path)
