"""
Surface selection: which Strapi API answers a logical operation.

Each operation carries an ordered list of strategies built from the
configured credentials. The selector tries them in order.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from strapi_mcp.api import _log_event
from strapi_mcp.exceptions import ConfigError, PrivilegeError

SURFACE_ADMIN = "admin"
SURFACE_PUBLIC = "public"

Call = Callable[[], Awaitable[Any]]


@dataclass(frozen=True)
class Operation:
    """A logical operation and how each surface would perform it."""

    name: str
    admin: Call | None = None
    public: Call | None = None
    privileged: bool = False


@dataclass(frozen=True)
class Strategy:
    surface: str
    call: Call


@dataclass(frozen=True)
class Outcome:
    surface: str
    result: Any


class SurfaceSelector:
    """Runs an Operation against the first surface that succeeds.

    Admin identity present: admin surface first, public surface as fallback
    when a static token is configured. Token only: public surface; privileged
    operations are refused before any network call.
    """

    def __init__(self, settings):
        self._settings = settings

    def strategies(self, op: Operation) -> list[Strategy]:
        has_admin = self._settings.has_admin_identity
        has_token = self._settings.has_api_token
        if op.privileged and not has_admin:
            raise PrivilegeError(
                f"[PRIVILEGE_REQUIRED] {op.name} needs admin credentials. Set "
                "STRAPI_ADMIN_EMAIL and STRAPI_ADMIN_PASSWORD; an API token is not enough."
            )
        ordered = []
        if has_admin and op.admin is not None:
            ordered.append(Strategy(SURFACE_ADMIN, op.admin))
        if has_token and op.public is not None and not op.privileged:
            ordered.append(Strategy(SURFACE_PUBLIC, op.public))
        if not ordered:
            raise ConfigError(
                f"[SETUP_NEEDED] No configured credential can perform {op.name}. "
                "Provide STRAPI_API_TOKEN or admin credentials."
            )
        return ordered

    async def run(self, op: Operation) -> Outcome:
        ordered = self.strategies(op)
        for index, strategy in enumerate(ordered):
            is_last = index == len(ordered) - 1
            try:
                result = await strategy.call()
            except Exception as e:
                if is_last:
                    _log_event("SURFACE", phase="failed", operation=op.name,
                               surface=strategy.surface, error=str(e))
                    raise
                _log_event("SURFACE", phase="fallback", operation=op.name,
                           surface=strategy.surface, next=ordered[index + 1].surface,
                           error=str(e))
                continue
            _log_event("SURFACE", phase="ok", operation=op.name, surface=strategy.surface)
            return Outcome(strategy.surface, result)
        raise ConfigError(f"[SETUP_NEEDED] No surface available for {op.name}.")
