"""Logging setup shared by the panel server, the CLI and the views."""

from __future__ import annotations

import logging
from typing import Optional

from .config import PanelSettings, get_settings

LOGGER_NAME = "sprinklerpanel"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# HTTP client libraries log one record per controller request.
CLIENT_LOGGERS = ("httpx", "httpcore")

_LEVEL_TOGGLES = (
    (logging.ERROR, "log_error_enabled"),
    (logging.WARNING, "log_warning_enabled"),
    (logging.INFO, "log_info_enabled"),
    (logging.NOTSET, "log_debug_enabled"),
)


class SettingsLevelFilter(logging.Filter):
    """Drop records whose level is switched off in :class:`PanelSettings`."""

    def __init__(self, settings: PanelSettings) -> None:
        super().__init__()
        self.settings = settings

    def filter(self, record: logging.LogRecord) -> bool:
        for threshold, toggle in _LEVEL_TOGGLES:
            if record.levelno >= threshold:
                return bool(getattr(self.settings, toggle))
        return True


_handler: Optional[logging.Handler] = None
_level_filter: Optional[SettingsLevelFilter] = None


def _tune_client_loggers(settings: PanelSettings) -> None:
    level = logging.DEBUG if settings.log_debug_enabled else logging.WARNING
    for name in CLIENT_LOGGERS:
        logging.getLogger(name).setLevel(level)


def configure_logging(settings: Optional[PanelSettings] = None, *, force: bool = False) -> logging.Logger:
    """Install the panel handler once; later calls only apply new level toggles.

    ``force`` replaces the handler, e.g. after stderr has been redirected.
    """

    global _handler, _level_filter
    settings = settings or get_settings()
    root = logging.getLogger(LOGGER_NAME)
    _tune_client_loggers(settings)

    if _handler is not None and not force:
        _level_filter.settings = settings
        return root
    if _handler is not None:
        root.removeHandler(_handler)

    _level_filter = SettingsLevelFilter(settings)
    _handler = logging.StreamHandler()
    _handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT))
    _handler.addFilter(_level_filter)

    root.addHandler(_handler)
    root.setLevel(logging.DEBUG)
    root.propagate = False
    return root


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return ``name`` as a child of the ``sprinklerpanel`` logger."""

    if _handler is None:
        configure_logging()
    if not name or name == LOGGER_NAME:
        return logging.getLogger(LOGGER_NAME)
    if not name.startswith(f"{LOGGER_NAME}."):
        name = f"{LOGGER_NAME}.{name}"
    return logging.getLogger(name)
