"""Typed response definitions for StrapiClient methods.

These TypedDicts document the shape of dicts returned by public API methods.
They are optional — runtime behavior is unchanged (plain dicts).
"""

from __future__ import annotations

from typing import Any, TypedDict


class ContentTypeInfo(TypedDict, total=False):
    displayName: str
    description: str | None
    singularName: str | None
    pluralName: str | None


class ContentTypeRow(TypedDict, total=False):
    """One entry of StrapiClient.list_content_types()."""

    uid: str
    apiID: str
    pluralApiId: str
    info: ContentTypeInfo
    attributes: dict[str, Any]
    pluginOptions: dict[str, Any] | None
    isLocalized: bool


class EntryListResult(TypedDict):
    """Return type of StrapiClient.get_entries() — REST shape on both surfaces."""

    data: list[dict[str, Any]]
    meta: dict[str, Any]


class ComponentRow(TypedDict, total=False):
    uid: str
    category: str
    displayName: str
    description: str | None
    icon: str | None
    attributes: dict[str, Any]


class HealthResult(TypedDict, total=False):
    status: str  # healthy | reloading | unhealthy
    message: str


class ConnectionResult(TypedDict):
    ok: bool
    auth_method: str
    surface: str
