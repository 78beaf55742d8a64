"""
Admin login: credential exchange for a session JWT.

Concurrent callers share one in-flight exchange; attempts are spaced by a
minimum interval; 429 responses are retried with backoff (Retry-After when
the server sends one), everything else fails fast.
"""

from __future__ import annotations

import asyncio

from strapi_mcp.api import _log_event, _mask_token, _parse_retry_after, _send
from strapi_mcp.exceptions import ConfigError, StrapiError

LOGIN_ENDPOINT = "/admin/login"

# Values for Authenticator.last_failure.
FAILURE_REJECTED = "rejected"
FAILURE_RATE_LIMITED = "rate_limited"
FAILURE_NETWORK = "network"
FAILURE_BAD_RESPONSE = "bad_response"
FAILURE_TIMEOUT = "wait_timeout"


def _extract_token(response):
    try:
        payload = response.json()
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    data = payload.get("data")
    if isinstance(data, dict) and isinstance(data.get("token"), str) and data["token"]:
        return data["token"]
    return None


class Authenticator:
    """Performs ``POST /admin/login`` against the session it was given."""

    def __init__(self, http, session, settings, *, sleep=asyncio.sleep, token_cache=None):
        self._http = http
        self._session = session
        self._settings = settings
        self._sleep = sleep
        self._token_cache = token_cache
        self.last_failure: str | None = None

    async def login(self) -> bool:
        """Make sure the session holds an admin token. Returns success.

        Raises ConfigError when no admin identity is configured.
        """
        if not self._settings.has_admin_identity:
            raise ConfigError(
                "[SETUP_NEEDED] Admin credentials missing. Set STRAPI_ADMIN_EMAIL and "
                "STRAPI_ADMIN_PASSWORD to use admin endpoints."
            )
        if self._session.token is not None:
            return True
        if self._session.login_in_progress:
            return await self._wait_for_inflight()

        inflight = asyncio.get_running_loop().create_future()
        self._session.inflight = inflight
        try:
            return await self._perform_login()
        finally:
            if not inflight.done():
                inflight.set_result(self._session.token is not None)
            self._session.inflight = None

    async def _wait_for_inflight(self) -> bool:
        inflight = self._session.inflight
        timeout = self._settings.login_poll_interval * self._settings.login_max_polls
        _log_event("AUTH", phase="login_wait", timeout_seconds=timeout)
        try:
            await asyncio.wait_for(asyncio.shield(inflight), timeout)
        except asyncio.TimeoutError:
            self.last_failure = FAILURE_TIMEOUT
            _log_event("AUTH", phase="login_wait_timeout")
        ok = self._session.token is not None
        if not ok and self.last_failure is None:
            self.last_failure = FAILURE_REJECTED
        return ok

    async def _perform_login(self) -> bool:
        settings = self._settings
        wait = self._session.seconds_until_next_attempt(settings.login_min_interval)
        if wait > 0:
            _log_event("AUTH", phase="spacing", wait_seconds=round(wait, 3))
            await self._sleep(wait)

        attempts = settings.login_max_attempts
        for attempt in range(attempts):
            self._session.mark_attempt()
            _log_event("AUTH", phase="login", attempt=attempt + 1, max_attempts=attempts,
                       email=settings.admin_email)
            try:
                response = await _send(
                    self._http,
                    "POST",
                    LOGIN_ENDPOINT,
                    body={"email": settings.admin_email, "password": settings.admin_password},
                    surface="login",
                )
            except StrapiError as e:
                self.last_failure = FAILURE_NETWORK
                _log_event("AUTH", phase="login_failed", reason=FAILURE_NETWORK, error=str(e))
                return False

            if response.status_code == 429:
                self.last_failure = FAILURE_RATE_LIMITED
                if attempt < attempts - 1:
                    delay = _parse_retry_after(response.headers)
                    if delay is None:
                        delay = settings.login_retry_base * (2**attempt)
                    delay = max(delay, self._session.seconds_until_next_attempt(
                        settings.login_min_interval))
                    _log_event("AUTH", phase="rate_limited", attempt=attempt + 1,
                               retry_in_seconds=delay)
                    await self._sleep(delay)
                    continue
                _log_event("AUTH", phase="login_failed", reason=FAILURE_RATE_LIMITED)
                return False

            token = _extract_token(response) if response.is_success else None
            if token:
                self._session.store(token)
                self.last_failure = None
                if self._token_cache is not None:
                    self._token_cache.save(token)
                _log_event("AUTH", phase="login_ok", token=_mask_token(token))
                return True

            self.last_failure = (
                FAILURE_REJECTED if 400 <= response.status_code < 500 else FAILURE_BAD_RESPONSE
            )
            _log_event("AUTH", phase="login_failed", reason=self.last_failure,
                       status=response.status_code)
            return False
        return False
