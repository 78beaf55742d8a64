"""
strapi-mcp shared configuration, constants, and module-level state.
Standalone module — no imports from other project files except exceptions.
"""

import os
from dataclasses import dataclass

from strapi_mcp.exceptions import ConfigError

# ---------------------------------------------------------------------------
# .env path and helpers
# ---------------------------------------------------------------------------

_PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__))
_PROJECT_ROOT = os.path.dirname(_PACKAGE_DIR)

ENV_PATH = os.path.join(_PROJECT_ROOT, ".env")

# Keys also read from os.environ (MCP hosts pass config as process env).
_KNOWN_KEYS = (
    "STRAPI_URL",
    "STRAPI_API_TOKEN",
    "STRAPI_ADMIN_EMAIL",
    "STRAPI_ADMIN_PASSWORD",
    "STRAPI_DEV_MODE",
    "STRAPI_HTTP_TIMEOUT_SECONDS",
    "STRAPI_LOGIN_MAX_ATTEMPTS",
    "STRAPI_LOGIN_RETRY_BASE_SECONDS",
    "STRAPI_LOGIN_MIN_INTERVAL_SECONDS",
    "STRAPI_LOGIN_POLL_SECONDS",
    "STRAPI_LOGIN_MAX_POLLS",
    "STRAPI_HTTP_LOG",
    "STRAPI_TOKEN_CACHE",
    "STRAPI_TOKEN_CACHE_PATH",
    "STRAPI_TOKEN_CACHE_TTL_SECONDS",
    "STRAPI_TOOL_LOG",
    "STRAPI_MCP_RESPONSE_MODE",
)


def load_env():
    env = {}
    if os.path.exists(ENV_PATH):
        with open(ENV_PATH) as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith("#") and "=" in line:
                    key, val = line.split("=", 1)
                    env[key.strip()] = val.strip().strip('"').strip("'")
    for key in _KNOWN_KEYS:
        value = os.environ.get(key)
        if value is not None and value != "":
            env[key] = value
    return env


def _env_bool(key, default=False):
    """Parse common boolean env formats."""
    raw = env.get(key)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(key, default):
    """Parse integer env values with fallback."""
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(key, default):
    """Parse float env values with fallback."""
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

VERSION = "0.4.1"
SERVER_NAME = "strapi-mcp"
CONTRACT_SCHEMA_VERSION = "1.0"

DEFAULT_URL = "http://localhost:1337"
PLACEHOLDER_TOKENS = {"strapi_token", "your-api-token-here"}

# ---------------------------------------------------------------------------
# Module-level state (loaded from .env / process env)
# ---------------------------------------------------------------------------

env = load_env()

STRAPI_URL = env.get("STRAPI_URL", DEFAULT_URL).rstrip("/")
API_TOKEN = env.get("STRAPI_API_TOKEN", "")
ADMIN_EMAIL = env.get("STRAPI_ADMIN_EMAIL", "")
ADMIN_PASSWORD = env.get("STRAPI_ADMIN_PASSWORD", "")
DEV_MODE = _env_bool("STRAPI_DEV_MODE", False)

HTTP_TIMEOUT_SECONDS = _env_float("STRAPI_HTTP_TIMEOUT_SECONDS", 30.0)
LOGIN_MAX_ATTEMPTS = _env_int("STRAPI_LOGIN_MAX_ATTEMPTS", 3)
LOGIN_RETRY_BASE_SECONDS = _env_float("STRAPI_LOGIN_RETRY_BASE_SECONDS", 1.0)
LOGIN_MIN_INTERVAL_SECONDS = _env_float("STRAPI_LOGIN_MIN_INTERVAL_SECONDS", 1.0)
LOGIN_POLL_SECONDS = _env_float("STRAPI_LOGIN_POLL_SECONDS", 0.1)
LOGIN_MAX_POLLS = _env_int("STRAPI_LOGIN_MAX_POLLS", 300)

HTTP_LOG_ENABLED = _env_bool("STRAPI_HTTP_LOG", False)

TOKEN_CACHE_ENABLED = _env_bool("STRAPI_TOKEN_CACHE", False)
TOKEN_CACHE_PATH = env.get(
    "STRAPI_TOKEN_CACHE_PATH", os.path.join(_PROJECT_ROOT, ".strapi-tokens.json")
)
TOKEN_CACHE_TTL_SECONDS = _env_int("STRAPI_TOKEN_CACHE_TTL_SECONDS", 30 * 60)

TOOL_LOG_PATH = env.get("STRAPI_TOOL_LOG", "")

MCP_RESPONSE_MODE = env.get("STRAPI_MCP_RESPONSE_MODE", "legacy").strip().lower()
if MCP_RESPONSE_MODE not in {"legacy", "envelope"}:
    MCP_RESPONSE_MODE = "legacy"


# ---------------------------------------------------------------------------
# Auth settings snapshot
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AuthSettings:
    """Everything the auth core needs, fixed at process start."""

    base_url: str = DEFAULT_URL
    api_token: str | None = None
    admin_email: str | None = None
    admin_password: str | None = None
    timeout: float = 30.0
    login_max_attempts: int = 3
    login_retry_base: float = 1.0
    login_min_interval: float = 1.0
    login_poll_interval: float = 0.1
    login_max_polls: int = 300

    @property
    def has_admin_identity(self):
        return bool(self.admin_email and self.admin_password)

    @property
    def has_api_token(self):
        return bool(self.api_token)


def auth_settings():
    """Snapshot the module-level config into an AuthSettings."""
    return AuthSettings(
        base_url=STRAPI_URL,
        api_token=API_TOKEN or None,
        admin_email=ADMIN_EMAIL or None,
        admin_password=ADMIN_PASSWORD or None,
        timeout=max(1.0, HTTP_TIMEOUT_SECONDS),
        login_max_attempts=max(1, LOGIN_MAX_ATTEMPTS),
        login_retry_base=max(0.0, LOGIN_RETRY_BASE_SECONDS),
        login_min_interval=max(0.0, LOGIN_MIN_INTERVAL_SECONDS),
        login_poll_interval=max(0.01, LOGIN_POLL_SECONDS),
        login_max_polls=max(1, LOGIN_MAX_POLLS),
    )


def _is_placeholder(token):
    return token in PLACEHOLDER_TOKENS or "placeholder" in token.lower()


def validate_credentials(settings):
    """Raise ConfigError unless at least one usable credential is configured."""
    if not settings.has_api_token and not settings.has_admin_identity:
        raise ConfigError(
            "[SETUP_NEEDED] Missing authentication. Provide STRAPI_API_TOKEN or both "
            "STRAPI_ADMIN_EMAIL and STRAPI_ADMIN_PASSWORD."
        )
    if settings.has_api_token and _is_placeholder(settings.api_token):
        raise ConfigError(
            "[SETUP_NEEDED] STRAPI_API_TOKEN appears to be a placeholder value. "
            "Create a real API token in the Strapi admin panel."
        )
    return settings
