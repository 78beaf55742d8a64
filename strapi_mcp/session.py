"""Admin session state shared by the authenticator and the request dispatcher."""

from __future__ import annotations

import time


class Session:
    """Holds the current admin JWT and login bookkeeping.

    One instance per client; tests build a fresh one each time. The
    in-flight login future doubles as the ``login_in_progress`` flag.
    """

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self.token: str | None = None
        self.acquired_at: float | None = None
        self.last_attempt_at: float | None = None
        self.inflight = None

    @property
    def login_in_progress(self) -> bool:
        return self.inflight is not None and not self.inflight.done()

    def now(self) -> float:
        return self._clock()

    def store(self, token: str) -> None:
        self.token = token
        self.acquired_at = self._clock()

    def mark_attempt(self) -> None:
        self.last_attempt_at = self._clock()

    def invalidate(self, token: str | None = None) -> bool:
        """Clear the token. With ``token`` given, only clear if it still matches.

        Returns True when something was cleared.
        """
        if self.token is None:
            return False
        if token is not None and token != self.token:
            return False
        self.token = None
        self.acquired_at = None
        return True

    def seconds_until_next_attempt(self, min_interval: float) -> float:
        if self.last_attempt_at is None:
            return 0.0
        elapsed = self._clock() - self.last_attempt_at
        return max(0.0, min_interval - elapsed)
