"""Runtime settings loaded from `.env` and environment variables."""

from __future__ import annotations

import logging
import ssl
from functools import lru_cache
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import certifi
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from formmapper.exceptions import SettingsError

_LOCAL_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})
logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Package settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    project_name: str = "formmapper"
    app_env: str = Field(
        default="dev",
        validation_alias="APP_ENV",
        description="Application environment, e.g. 'dev', 'prod'.",
    )

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Logging level, e.g. 'INFO', 'DEBUG'.",
    )
    log_json: bool = Field(
        default=True,
        validation_alias="LOG_JSON",
        description="Enable JSON formatted logs.",
    )
    log_file: str | None = Field(
        default=None,
        validation_alias="LOG_FILE",
        description="File path for log output.",
    )
    http_proxy: str | None = Field(default=None, validation_alias="HTTP_PROXY", description="HTTP proxy URL.")
    https_proxy: str | None = Field(
        default=None,
        validation_alias="HTTPS_PROXY",
        description="HTTPS proxy URL.",
    )

    cert_path: str | None = Field(
        default=None,
        validation_alias="CERT_PATH",
        description="Path to a CA bundle; the certifi bundle is used when unset.",
    )
    timeout: float = Field(
        default=30.0,
        validation_alias="TIMEOUT",
        description="Request timeout in seconds.",
    )

    graph_api_base_url: str | None = Field(
        default=None,
        validation_alias="GRAPH_API_BASE_URL",
        description="Base URL of the blueprint graph API, e.g. 'https://api.example.com/api/v1'.",
    )
    graph_api_key: str | None = Field(
        default=None,
        validation_alias="GRAPH_API_KEY",
        description="Bearer token for the blueprint graph API.",
    )

    mapping_store_path: str = Field(
        default="results/mappings.json",
        validation_alias="MAPPING_STORE_PATH",
        description="JSON file holding the mapping sets of every form.",
    )
    current_user_name: str = Field(
        default="Jane Doe",
        validation_alias="CURRENT_USER_NAME",
        description="Value previewed for the `user.name` global source.",
    )
    current_user_email: str = Field(
        default="jane.doe@example.com",
        validation_alias="CURRENT_USER_EMAIL",
        description="Value previewed for the `user.email` global source.",
    )

    @field_validator("graph_api_base_url")
    @classmethod
    def _require_https_outside_localhost(cls, value: str | None) -> str | None:
        """Reject plain-HTTP graph endpoints unless they point to a local host.

        Args:
            value (str | None): Configured base URL.

        Raises:
            ValueError: If the URL uses http for a non-local host.

        Returns:
            str | None: The URL without trailing slash.
        """
        if value is None:
            return None
        parsed = urlparse(value)
        if parsed.scheme not in {"http", "https"}:
            raise ValueError("GRAPH_API_BASE_URL must be an http(s) URL")
        if parsed.scheme == "http" and (parsed.hostname or "") not in _LOCAL_HOSTS:
            raise ValueError("GRAPH_API_BASE_URL must use https outside local development")
        return value.rstrip("/")


def build_ssl_context(settings: Settings) -> ssl.SSLContext:
    """Build a strict SSL context from settings.

    Args:
        settings (Settings): Runtime settings.

    Returns:
        ssl.SSLContext: Configured TLS context.
    """
    ssl_context = ssl.create_default_context(cafile=settings.cert_path or certifi.where())
    ssl_context.verify_mode = ssl.CERT_REQUIRED
    ssl_context.minimum_version = ssl.TLSVersion.TLSv1_2
    return ssl_context


def build_httpx_client_kwargs(settings: Settings) -> dict[str, Any]:
    """Build kwargs used for `httpx.Client`.

    Args:
        settings (Settings): Runtime settings.

    Returns:
        dict[str, Any]: Arguments for the client constructor.
    """
    kwargs: dict[str, Any] = {
        "verify": build_ssl_context(settings),
        "timeout": settings.timeout,
        "headers": {"Accept": "application/json"},
    }
    if settings.graph_api_key:
        kwargs["headers"]["Authorization"] = f"Bearer {settings.graph_api_key}"

    proxy_url = settings.https_proxy or settings.http_proxy
    if proxy_url:
        kwargs["proxy"] = proxy_url
    return kwargs


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance.

    Raises:
        SettingsError: If settings cannot be loaded or validated.

    Returns:
        Settings: The loaded settings instance.
    """
    try:
        return Settings()
    except Exception as exc:
        if _is_missing_settings_error(exc):
            ensure_env_file_exists()
            try:
                return Settings()
            except Exception as retry_exc:
                raise SettingsError(exc=retry_exc) from retry_exc
        raise SettingsError(exc=exc) from exc


def ensure_env_file_exists(
    *,
    env_path: Path = Path(".env"),
    template_path: Path = Path(".env.template"),
) -> None:
    """Create `.env` from template when missing.

    Args:
        env_path (Path): Target environment file path.
        template_path (Path): Template file path.
    """
    if env_path.exists() or not template_path.exists():
        return
    env_path.write_text(template_path.read_text(encoding="utf-8"), encoding="utf-8")
    logger.info(
        "Created environment file from template",
        extra={"env_path": str(env_path), "template_path": str(template_path)},
    )


def _is_missing_settings_error(exc: Exception) -> bool:
    """Return whether the settings failure is due to missing values.

    Args:
        exc (Exception): Caught settings initialization error.

    Returns:
        bool: True when the error represents missing settings values.
    """
    if not isinstance(exc, ValidationError):
        return False
    return any(error.get("type") == "missing" for error in exc.errors())
