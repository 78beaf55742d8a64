"""strapi-mcp — MCP server and async client for managing Strapi CMS content."""

from strapi_mcp.client import StrapiClient
from strapi_mcp.config import VERSION, AuthSettings
from strapi_mcp.exceptions import (
    AuthError,
    ConfigError,
    HTTPError,
    PrivilegeError,
    StrapiError,
)
from strapi_mcp.types import (
    ComponentRow,
    ConnectionResult,
    ContentTypeRow,
    EntryListResult,
    HealthResult,
)

__all__ = [
    "VERSION",
    "AuthSettings",
    "StrapiClient",
    "StrapiError",
    "ConfigError",
    "AuthError",
    "PrivilegeError",
    "HTTPError",
    "ComponentRow",
    "ConnectionResult",
    "ContentTypeRow",
    "EntryListResult",
    "HealthResult",
]
