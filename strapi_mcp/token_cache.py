"""
Best-effort on-disk cache for the admin JWT.

Lets short-lived processes (test runs, repeated CLI calls) skip the login
round-trip and stay clear of Strapi's login rate limit. Every failure here is
logged and ignored; the auth core never depends on the cache.
"""

import json
import os
import tempfile
import time

from strapi_mcp.api import _log_event


class TokenCache:
    def __init__(self, path, ttl_seconds, clock=time.time):
        self.path = path
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def _read(self):
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            _log_event("CACHE", phase="read_failed", error=str(e))
            return {}
        return data if isinstance(data, dict) else {}

    def load(self):
        """Return the cached admin token if it is younger than the TTL."""
        entry = self._read().get("adminJwtToken")
        if not isinstance(entry, dict):
            return None
        token = entry.get("token")
        timestamp = entry.get("timestamp")
        if not token or not isinstance(timestamp, (int, float)):
            return None
        age = self._clock() - timestamp
        if age >= self.ttl_seconds:
            _log_event("CACHE", phase="expired", age_seconds=round(age))
            return None
        _log_event("CACHE", phase="hit", age_seconds=round(age))
        return token

    def save(self, token):
        """Write the token atomically (write-then-rename, owner-only)."""
        payload = {"adminJwtToken": {"token": token, "timestamp": self._clock()}}
        cache_dir = os.path.dirname(os.path.abspath(self.path)) or "."
        try:
            os.makedirs(cache_dir, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=cache_dir, prefix=".strapi_tokens_tmp_")
        except OSError as e:
            _log_event("CACHE", phase="write_failed", error=str(e))
            return
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            _log_event("CACHE", phase="write_failed", error=str(e))
            try:
                os.remove(tmp_path)
            except OSError:
                pass
            return
        try:
            os.chmod(self.path, 0o600)
        except (OSError, NotImplementedError):
            pass

    def clear(self):
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass
        except OSError as e:
            _log_event("CACHE", phase="clear_failed", error=str(e))
