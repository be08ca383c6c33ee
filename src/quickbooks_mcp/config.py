"""Runtime configuration loaded from the environment.

Values may come from a ``.env`` file in the working directory; they are
read once at startup into an immutable ``Settings`` object.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

from dotenv import find_dotenv, load_dotenv

from quickbooks_mcp.errors import ConfigurationError

AUTHORIZATION_ENDPOINT = "https://appcenter.intuit.com/connect/oauth2"
TOKEN_ENDPOINT = "https://oauth.platform.intuit.com/oauth2/v1/tokens/bearer"
ACCOUNTING_SCOPE = "com.intuit.quickbooks.accounting"

API_BASE_URLS = {
    "sandbox": "https://sandbox-quickbooks.api.intuit.com/v3/company",
    "production": "https://quickbooks.api.intuit.com/v3/company",
}

DEFAULT_REDIRECT_URI = "http://localhost:3000/callback"
DEFAULT_MINOR_VERSION = 75
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
CREDENTIALS_FILENAME = "credentials.json"


@dataclass(frozen=True)
class Settings:
    client_id: str
    client_secret: str
    realm_id: str | None = None
    redirect_uri: str = DEFAULT_REDIRECT_URI
    environment: str = "sandbox"
    minor_version: int = DEFAULT_MINOR_VERSION
    config_dir: Path = Path.home() / ".quickbooks-mcp"
    http_timeout: float = 30.0
    auth_timeout: float = 300.0
    log_level: str = "INFO"
    scope: str = ACCOUNTING_SCOPE
    authorization_endpoint: str = AUTHORIZATION_ENDPOINT
    token_endpoint: str = TOKEN_ENDPOINT

    @property
    def api_base_url(self) -> str:
        return API_BASE_URLS[self.environment]

    @property
    def credentials_path(self) -> Path:
        return self.config_dir / CREDENTIALS_FILENAME

    @property
    def callback_host(self) -> str:
        return urlparse(self.redirect_uri).hostname or "localhost"

    @property
    def callback_port(self) -> int:
        parsed = urlparse(self.redirect_uri)
        if parsed.port:
            return parsed.port
        return 443 if parsed.scheme == "https" else 80

    @property
    def callback_path(self) -> str:
        return urlparse(self.redirect_uri).path or "/"


def _require(env: dict[str, str], name: str) -> str:
    value = env.get(name, "").strip()
    if not value:
        raise ConfigurationError(f"Missing required environment variable {name}")
    return value


def _number(env: dict[str, str], name: str, default: float, cast=float):
    raw = env.get(name)
    if raw is None or not raw.strip():
        return cast(default)
    try:
        return cast(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e


def settings_from_env(env: dict[str, str]) -> Settings:
    """Build settings from a mapping of environment variables.

    Args:
        env: Environment mapping, usually ``os.environ``

    Returns:
        Settings: Validated settings

    Raises:
        ConfigurationError: If a required variable is missing or malformed
    """
    environment = env.get("QB_ENVIRONMENT", "sandbox").strip().lower() or "sandbox"
    if environment not in API_BASE_URLS:
        raise ConfigurationError(
            f"QB_ENVIRONMENT must be one of {sorted(API_BASE_URLS)}, got {environment!r}"
        )

    redirect_uri = env.get("QB_REDIRECT_URI", "").strip() or DEFAULT_REDIRECT_URI
    if urlparse(redirect_uri).scheme not in ("http", "https"):
        raise ConfigurationError(f"QB_REDIRECT_URI is not an http(s) URL: {redirect_uri}")

    log_level = env.get("QB_LOG_LEVEL", "").strip().upper() or "INFO"
    if log_level not in LOG_LEVELS:
        raise ConfigurationError(
            f"QB_LOG_LEVEL must be one of {LOG_LEVELS}, got {log_level!r}"
        )

    config_dir = env.get("QB_CONFIG_DIR", "").strip()

    return Settings(
        client_id=_require(env, "QB_CLIENT_ID"),
        client_secret=_require(env, "QB_CLIENT_SECRET"),
        realm_id=env.get("QB_REALM_ID", "").strip() or None,
        redirect_uri=redirect_uri,
        environment=environment,
        minor_version=_number(env, "QB_MINOR_VERSION", DEFAULT_MINOR_VERSION, int),
        config_dir=(
            Path(config_dir).expanduser()
            if config_dir
            else Path.home() / ".quickbooks-mcp"
        ),
        http_timeout=_number(env, "QB_HTTP_TIMEOUT", 30.0),
        auth_timeout=_number(env, "QB_AUTH_TIMEOUT", 300.0),
        log_level=log_level,
    )


def load_settings(env_file: str | Path | None = None) -> Settings:
    """Load ``.env`` (if present) into the process environment and read settings."""
    load_dotenv(dotenv_path=env_file or find_dotenv(usecwd=True))
    return settings_from_env(dict(os.environ))
