"""
strapi-mcp exception hierarchy.

All custom exceptions live here to avoid circular imports.
"""


class StrapiError(Exception):
    """Base error — network, parse, validation, not-found."""

    error_type = "error"
    exit_code = 1


class ConfigError(StrapiError):
    """Required credentials absent or unusable. Never retried."""

    error_type = "config"
    exit_code = 2


class AuthError(StrapiError):
    """Admin login rejected, re-login failed, or still 401 after the retry."""

    error_type = "auth"
    exit_code = 2

    def __init__(self, message, status=None, body=None, reason=None):
        super().__init__(message)
        self.status = status
        self.body = body
        self.reason = reason


class PrivilegeError(StrapiError):
    """Operation needs admin credentials but only an API token is configured."""

    error_type = "privilege_required"
    exit_code = 2


class HTTPError(StrapiError):
    """Upstream 4xx/5xx unrelated to auth. Carries enough detail to classify."""

    error_type = "upstream"

    def __init__(self, code, reason, body, headers=None, message=None):
        super().__init__(message or f"HTTP {code}: {reason}")
        self.code = code
        self.reason = reason
        self.body = body
        self.headers = headers or {}

    @property
    def status(self):
        return self.code
