"""
Shared pure-utility functions for strapi-mcp.

These helpers have no I/O and no side effects.
"""

import json
import re

from strapi_mcp.exceptions import StrapiError

_BASE64_HEAD = re.compile(r"^[A-Za-z0-9+/=]+$")

# Fields Strapi manages itself; sending them back on update is rejected.
ENTRY_METADATA_FIELDS = frozenset(
    {
        "id",
        "documentId",
        "createdAt",
        "updatedAt",
        "publishedAt",
        "locale",
        "status",
        "createdBy",
        "updatedBy",
        "localizations",
        "meta",
    }
)


def generate_slug(text):
    """'Hello, World!' -> 'hello-world'"""
    slug = str(text).lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[\s_-]+", "-", slug)
    return slug.strip("-")


def ensure_slug_field(data, attributes):
    """Fill a missing ``uid``-type slug from title/name when the schema has one."""
    if not isinstance(attributes, dict) or "slug" not in attributes:
        return data
    slug = attributes["slug"]
    if not isinstance(slug, dict) or slug.get("type") != "uid" or data.get("slug"):
        return data
    base = data.get("name") or data.get("title")
    if not base:
        return data
    out = dict(data)
    out["slug"] = generate_slug(base)
    return out


def clean_entry_for_update(entry):
    """Drop Strapi-managed metadata from an entry before sending it back."""
    return {k: v for k, v in entry.items() if k not in ENTRY_METADATA_FIELDS}


def filter_base64(data, min_len=1000):
    """Replace large base64 blobs in API responses with a short placeholder."""
    if isinstance(data, list):
        return [filter_base64(item, min_len) for item in data]
    if isinstance(data, dict):
        out = {}
        for key, value in data.items():
            if (
                isinstance(value, str)
                and len(value) > min_len
                and _BASE64_HEAD.match(value[:100])
            ):
                out[key] = f"[BASE64_DATA_FILTERED - {len(value)} chars]"
            else:
                out[key] = filter_base64(value, min_len)
        return out
    return data


def parse_json_option(raw, context="options"):
    """Parse an optional JSON-object string argument from a tool call."""
    if raw is None or raw == "":
        return {}
    if isinstance(raw, dict):
        return raw
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise StrapiError(
            f"[ERROR] Invalid JSON in {context}: {e.msg} at position {e.pos}"
        ) from None
    if not isinstance(value, dict):
        raise StrapiError(f"[ERROR] {context} must be a JSON object, got {type(value).__name__}.")
    return value


def guess_uid(plural_api_id):
    """'articles' -> 'api::article.article'. Last resort when lookup fails."""
    singular = re.sub(r"s$", "", plural_api_id)
    return f"api::{singular}.{singular}"


def attributes_as_dict(attributes):
    """Strapi returns attributes as a dict or as a list of {name, ...}."""
    if isinstance(attributes, dict):
        return attributes
    if isinstance(attributes, list):
        return {a["name"]: a for a in attributes if isinstance(a, dict) and a.get("name")}
    return {}


def missing_required_fields(data, attributes):
    """Return [(name, type)] for required attributes absent from data."""
    missing = []
    for name, attr in attributes_as_dict(attributes).items():
        if isinstance(attr, dict) and attr.get("required") and name not in data:
            missing.append((name, attr.get("type") or "unknown"))
    return missing


def dynamic_zone_errors(data, attributes):
    """Check dynamic-zone items carry an allowed ``__component``."""
    errors = []
    for name, attr in attributes_as_dict(attributes).items():
        if not isinstance(attr, dict) or attr.get("type") != "dynamiczone":
            continue
        items = data.get(name)
        if not isinstance(items, list):
            continue
        allowed = attr.get("components") or []
        invalid = []
        for item in items:
            component = item.get("__component") if isinstance(item, dict) else None
            if not component:
                errors.append(f"Component in {name} is missing __component field")
            elif component not in allowed:
                invalid.append(component)
        if invalid:
            errors.append(
                f"Invalid components for dynamic zone '{name}': "
                f"provided {', '.join(invalid)}; allowed {', '.join(allowed) or 'none'}"
            )
    return errors


# ---------------------------------------------------------------------------
# Dynamic-zone section edits (return a new list, never mutate the input)
# ---------------------------------------------------------------------------


def _check_section(section):
    if not isinstance(section, dict) or not section.get("__component"):
        raise StrapiError("[ERROR] Section must include __component field.")


def _check_index(sections, index, label="Section index"):
    if not 0 <= index < len(sections):
        available = f"0-{len(sections) - 1}" if sections else "none"
        raise StrapiError(
            f"[ERROR] {label} {index} is out of range. Available sections: {available}"
        )


def insert_section(sections, section, position=None):
    """Insert at ``position`` (append when None)."""
    _check_section(section)
    out = list(sections)
    if position is None:
        out.append(section)
    else:
        if not 0 <= position <= len(out):
            raise StrapiError(
                f"[ERROR] Position {position} is out of range (0-{len(out)})."
            )
        out.insert(position, section)
    return out


def replace_section(sections, index, section):
    _check_section(section)
    _check_index(sections, index)
    out = list(sections)
    out[index] = section
    return out


def remove_section(sections, index):
    _check_index(sections, index)
    out = list(sections)
    del out[index]
    return out


def move_section(sections, from_index, to_index):
    """[a, b, c] moving 0 -> 2 gives [b, c, a]."""
    _check_index(sections, from_index, "From index")
    _check_index(sections, to_index, "To index")
    out = list(sections)
    out.insert(to_index, out.pop(from_index))
    return out


def infer_schema_from_entry(uid, entry):
    """Best-guess schema from a sample entry when the builder API is unavailable."""
    source = entry.get("attributes", entry) if isinstance(entry, dict) else {}
    attributes = {}
    for key, value in source.items():
        if key in {"id", "documentId"}:
            continue
        if isinstance(value, bool):
            kind = "boolean"
        elif isinstance(value, (int, float)):
            kind = "number"
        elif isinstance(value, list):
            kind = "relation"
        elif isinstance(value, dict):
            kind = "json"
        else:
            kind = "string"
        attributes[key] = {"type": kind}
    name = uid.split(".")[-1]
    return {
        "uid": uid,
        "apiID": name,
        "info": {"displayName": name, "description": f"Inferred schema for {uid}"},
        "attributes": attributes,
        "inferred": True,
    }
