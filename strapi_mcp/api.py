"""
HTTP request layer, security helpers, and the authenticated request dispatchers.

Two surfaces talk to Strapi:
  RequestDispatcher — admin-facing paths with the admin session JWT
                      (login on demand, one re-login + retry on 401).
  PublicApi         — ``/api/...`` paths with the static API token.
"""

from __future__ import annotations

import json
import re
import sys
import time
import urllib.parse
import uuid
from typing import Any

import httpx

from strapi_mcp import config
from strapi_mcp.exceptions import AuthError, HTTPError, StrapiError

# ---------------------------------------------------------------------------
# Security helpers
# ---------------------------------------------------------------------------


def _mask_token(token):
    """Show only first 6 chars of a token for safe logging."""
    if not token:
        return ""
    return token[:6] + "..." if len(token) > 6 else token


def _sanitize_error(body, max_len=500):
    """Truncate and clean error body for safe display."""
    if not body:
        return ""
    cleaned = re.sub(r"<[^>]+>", "", body)
    cleaned = re.sub(r"\s+", " ", cleaned).strip()
    if len(cleaned) > max_len:
        return cleaned[:max_len] + "... [truncated]"
    return cleaned


def _sanitize_url_for_log(url):
    """Mask sensitive query params in URLs before logging."""
    parsed = urllib.parse.urlsplit(url)
    if not parsed.query:
        return url
    pairs = urllib.parse.parse_qsl(parsed.query, keep_blank_values=True)
    masked = []
    for key, value in pairs:
        if key.lower() in {"token", "accesskey", "password"}:
            masked.append((key, "***"))
        else:
            masked.append((key, value))
    safe_query = urllib.parse.urlencode(masked, doseq=True)
    return urllib.parse.urlunsplit(
        (parsed.scheme, parsed.netloc, parsed.path, safe_query, parsed.fragment)
    )


# ---------------------------------------------------------------------------
# Logging and error envelopes
# ---------------------------------------------------------------------------


def _log_event(tag, **fields):
    """Emit structured logs to stderr when enabled. stdout belongs to MCP."""
    if not config.HTTP_LOG_ENABLED:
        return
    print(f"[{tag}] " + json.dumps(fields, ensure_ascii=False, sort_keys=True, default=str),
          file=sys.stderr)


def _error_envelope(message, status=None, request_id=None, retryable=None, detail=None):
    """Build a consistent, display-safe HTTP error message."""
    meta = []
    if status is not None:
        meta.append(f"status={status}")
    if request_id:
        meta.append(f"request_id={request_id}")
    if retryable is not None:
        meta.append(f"retryable={'yes' if retryable else 'no'}")
    suffix = f" ({', '.join(meta)})" if meta else ""
    body = f"[ERROR] {message}{suffix}"
    if detail:
        body += f"\n{detail}"
    return body


def _parse_retry_after(headers):
    """Return Retry-After seconds from response headers, or None."""
    if not headers:
        return None
    value = headers.get("Retry-After")
    if value is None:
        return None
    try:
        secs = float(str(value).strip())
    except ValueError:
        return None
    return max(0.0, secs)


# ---------------------------------------------------------------------------
# Request building
# ---------------------------------------------------------------------------


def _flatten_params(params, prefix=""):
    """Serialize nested query params in Strapi's bracket syntax.

    {"filters": {"title": {"$eq": "x"}}, "sort": ["title:asc"]} ->
    [("filters[title][$eq]", "x"), ("sort[0]", "title:asc")]
    """
    items = []
    if params is None:
        return items
    if isinstance(params, dict):
        for key, value in params.items():
            if value is None:
                continue
            name = f"{prefix}[{key}]" if prefix else str(key)
            items.extend(_flatten_params(value, name))
    elif isinstance(params, (list, tuple)):
        for i, value in enumerate(params):
            items.extend(_flatten_params(value, f"{prefix}[{i}]"))
    elif isinstance(params, bool):
        items.append((prefix, "true" if params else "false"))
    else:
        items.append((prefix, str(params)))
    return items


def _request_headers(token=None):
    headers = {
        "Accept": "application/json",
        "X-Request-Id": str(uuid.uuid4()),
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def _error_message_from_body(payload):
    """Pull a human message out of Strapi's {"error": {...}} shape."""
    if isinstance(payload, dict):
        err = payload.get("error")
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
        if isinstance(err, str) and err:
            return err
        if payload.get("message"):
            return str(payload["message"])
    return None


def _decode_json(response):
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError, ValueError):
        return None


async def _send(http, method, endpoint, *, token=None, body=None, params=None, files=None,
                data=None, surface="admin"):
    """Issue one HTTP call. Network failures become StrapiError; statuses are returned."""
    headers = _request_headers(token)
    request_id = headers["X-Request-Id"]
    query = _flatten_params(params) or None
    kwargs: dict[str, Any] = {"headers": headers, "params": query}
    if files is not None:
        kwargs["files"] = files
        if data is not None:
            kwargs["data"] = data
    elif body is not None:
        kwargs["json"] = body
    start = time.perf_counter()
    _log_event("HTTP", phase="request", surface=surface, method=method.upper(),
               endpoint=_sanitize_url_for_log(endpoint), request_id=request_id)
    try:
        response = await http.request(method.upper(), endpoint, **kwargs)
    except httpx.TimeoutException as e:
        _log_event("HTTP", phase="network_error", error="timeout", request_id=request_id)
        raise StrapiError(
            _error_envelope(
                f"Request to {endpoint} timed out. Is Strapi reachable?",
                request_id=request_id,
                retryable=False,
            )
        ) from e
    except httpx.RequestError as e:
        _log_event("HTTP", phase="network_error", error=str(e), request_id=request_id)
        raise StrapiError(
            _error_envelope(
                f"Connection failed: {e}. Check that Strapi is running.",
                request_id=request_id,
                retryable=False,
            )
        ) from e
    _log_event(
        "HTTP",
        phase="response",
        surface=surface,
        method=method.upper(),
        endpoint=_sanitize_url_for_log(endpoint),
        status=response.status_code,
        latency_ms=round((time.perf_counter() - start) * 1000, 2),
        request_id=request_id,
    )
    return response


def _raise_http_error(response, method, endpoint, status=None):
    code = status or response.status_code
    payload = _decode_json(response)
    detail = _error_message_from_body(payload)
    body_text = response.text
    raise HTTPError(
        code,
        response.reason_phrase,
        body_text,
        headers=dict(response.headers),
        message=_error_envelope(
            f"{method.upper()} {endpoint} failed: {detail or f'HTTP {code}'}",
            status=code,
            request_id=response.headers.get("X-Request-Id"),
            retryable=code in {429, 502, 503, 504},
            detail=_sanitize_error(body_text) if not detail else None,
        ),
    )


def _parse_response(response, method, endpoint):
    """Return the decoded body of a successful response or raise HTTPError."""
    if response.status_code >= 400:
        _raise_http_error(response, method, endpoint)
    if not response.content:
        return None
    payload = _decode_json(response)
    if payload is None:
        content_type = response.headers.get("Content-Type", "")
        if "text/html" in content_type:
            raise StrapiError(
                f"[ERROR] Got an HTML page instead of JSON for {method.upper()} {endpoint}. "
                "The endpoint may need admin authentication or may not exist."
            )
        return response.text
    # Strapi sometimes reports errors inside a 2xx body.
    if isinstance(payload, dict) and payload.get("error"):
        err = payload["error"]
        status = err.get("status") if isinstance(err, dict) else None
        _raise_http_error(response, method, endpoint, status=status or response.status_code)
    return payload


# ---------------------------------------------------------------------------
# Dispatchers
# ---------------------------------------------------------------------------


class RequestDispatcher:
    """Admin-surface requests authenticated with the session JWT.

    Recovers locally from exactly one stale-token cycle: on a 401 it clears
    the token it sent, logs in again and retries the call once.
    """

    def __init__(self, http, session, authenticator):
        self._http = http
        self._session = session
        self._authenticator = authenticator

    async def _ensure_token(self):
        if self._session.token is None:
            _log_event("AUTH", phase="login_required")
            if not await self._authenticator.login():
                raise AuthError(
                    "[AUTH_REQUIRED] Not authenticated for admin API access "
                    f"(login {self._authenticator.last_failure or 'failed'}).",
                    reason=self._authenticator.last_failure,
                )
        return self._session.token

    async def request(self, endpoint, method="GET", body=None, params=None, files=None,
                      data=None):
        token = await self._ensure_token()
        response = await _send(self._http, method, endpoint, token=token, body=body,
                               params=params, files=files, data=data)
        if response.status_code == 401:
            _log_event("AUTH", phase="stale_token", endpoint=endpoint, token=_mask_token(token))
            self._session.invalidate(token)
            if not await self._authenticator.login():
                raise AuthError(
                    "[AUTH_FAILED] Admin re-authentication failed after token expiry.",
                    status=401,
                    body=response.text,
                    reason=self._authenticator.last_failure,
                )
            retry_token = self._session.token
            response = await _send(self._http, method, endpoint, token=retry_token, body=body,
                                   params=params, files=files, data=data)
            if response.status_code == 401:
                self._session.invalidate(retry_token)
                raise AuthError(
                    f"[AUTH_FAILED] {method.upper()} {endpoint} still unauthorized after re-login.",
                    status=401,
                    body=response.text,
                )
            _log_event("AUTH", phase="retried", endpoint=endpoint, status=response.status_code)
        return _parse_response(response, method, endpoint)


class PublicApi:
    """Public ``/api/...`` surface using the static API token. Never retries."""

    def __init__(self, http, api_token):
        self._http = http
        self._token = api_token

    async def request(self, endpoint, method="GET", body=None, params=None, files=None,
                      data=None, authenticated=True):
        token = self._token if authenticated else None
        response = await _send(self._http, method, endpoint, token=token, body=body,
                               params=params, files=files, data=data, surface="public")
        return _parse_response(response, method, endpoint)
