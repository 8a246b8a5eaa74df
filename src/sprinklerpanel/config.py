"""Application configuration for SprinklerPanel."""

from __future__ import annotations

import re
from datetime import timedelta, timezone, tzinfo
from threading import RLock
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8080
DEFAULT_LOG_LEVEL = "info"
DEFAULT_LOG_ERROR_ENABLED = True
DEFAULT_LOG_WARNING_ENABLED = True
DEFAULT_LOG_INFO_ENABLED = True
DEFAULT_LOG_DEBUG_ENABLED = False
DEFAULT_ALLOWED_ORIGINS = ("*",)
DEFAULT_BACKEND_URL = "http://pico-framework"
DEFAULT_POLL_INTERVAL_SECONDS = 5.0
DEFAULT_LOG_REFRESH_SECONDS = 5.0
DEFAULT_ROUTE = "#/"

_OFFSET_RE = re.compile(r"^([+-])(\d{2}):?(\d{2})$")


class PanelSettings(BaseSettings):
    """Settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SPRINKLERPANEL_",
        env_file=".env",
        extra="ignore",
    )

    backend_url: str = Field(default=DEFAULT_BACKEND_URL, description="Base URL of the sprinkler controller.")
    request_timeout_seconds: Optional[float] = Field(
        default=None,
        gt=0.0,
        description="Per-request timeout. Leave unset to wait for the transport to resolve.",
    )
    poll_interval_seconds: float = Field(
        default=DEFAULT_POLL_INTERVAL_SECONDS,
        gt=0.0,
        description="Dashboard reconciliation cadence.",
    )
    log_refresh_seconds: float = Field(
        default=DEFAULT_LOG_REFRESH_SECONDS,
        gt=0.0,
        description="Refresh cadence for the log viewer.",
    )
    default_route: str = Field(default=DEFAULT_ROUTE, description="Route mounted when the panel starts.")
    timezone: Optional[str] = Field(
        default=None,
        description="Display timezone (IANA name or +HH:MM offset). Unset uses the system zone.",
    )
    host: str = Field(default=DEFAULT_HOST, description="Interface for the panel server.")
    port: int = Field(default=DEFAULT_PORT, description="Port for the panel server.")
    reload: bool = Field(default=False, description="Enable auto-reload. Use only during development.")
    log_level: str = Field(default=DEFAULT_LOG_LEVEL, description="Uvicorn log level.")
    log_error_enabled: bool = Field(
        default=DEFAULT_LOG_ERROR_ENABLED,
        description="Emit error-level log records.",
    )
    log_warning_enabled: bool = Field(
        default=DEFAULT_LOG_WARNING_ENABLED,
        description="Emit warning-level log records.",
    )
    log_info_enabled: bool = Field(
        default=DEFAULT_LOG_INFO_ENABLED,
        description="Emit information-level log records.",
    )
    log_debug_enabled: bool = Field(
        default=DEFAULT_LOG_DEBUG_ENABLED,
        description="Emit debug-level log records.",
    )
    allowed_origins: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ALLOWED_ORIGINS),
        description="CORS origins allowed to access the panel.",
    )

    @field_validator("backend_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("backend_url must not be empty")
        return value.rstrip("/")

    @field_validator("default_route")
    @classmethod
    def _normalise_route(cls, value: str) -> str:
        value = value.strip() or DEFAULT_ROUTE
        return value if value.startswith("#") else f"#{value}"

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        resolve_timezone(value)
        return value.strip()

    def display_timezone(self) -> Optional[tzinfo]:
        """Return the configured display zone, or None for the system zone."""

        return resolve_timezone(self.timezone) if self.timezone else None


def resolve_timezone(name: str) -> tzinfo:
    """Resolve an IANA name, ``UTC`` or a fixed ``+HH:MM`` offset into a tzinfo."""

    name = name.strip()
    if name.upper() in {"UTC", "Z", "GMT"}:
        return timezone.utc
    match = _OFFSET_RE.match(name)
    if match:
        sign, hours, minutes = match.groups()
        if int(hours) > 23 or int(minutes) > 59:
            raise ValueError(f"Invalid timezone offset: {name!r}")
        offset = timedelta(hours=int(hours), minutes=int(minutes))
        return timezone(offset if sign == "+" else -offset)
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Invalid timezone identifier: {name!r}") from exc


_SETTINGS_LOCK = RLock()
_SETTINGS: PanelSettings | None = None


def get_settings() -> PanelSettings:
    """Return the current application settings, loading them if necessary."""

    global _SETTINGS
    with _SETTINGS_LOCK:
        if _SETTINGS is None:
            _SETTINGS = PanelSettings()
        return _SETTINGS


def reload_settings() -> PanelSettings:
    """Reload settings from the environment, replacing the current cache."""

    global _SETTINGS
    with _SETTINGS_LOCK:
        _SETTINGS = PanelSettings()
        return _SETTINGS
