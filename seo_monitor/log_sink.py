"""Structured, fire-and-forget application log sink."""

import logging
from collections.abc import Mapping
from typing import Any, Optional, Protocol

from seo_monitor.database import get_session
from seo_monitor.models import AppLog

logger = logging.getLogger(__name__)

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}


class LogSink(Protocol):
    """Accepts structured ``{level, source, action, details}`` entries."""

    def emit(
        self,
        level: str,
        source: str,
        action: str,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None: ...


class LoggingSink:
    """LogSink that only forwards to the stdlib logger."""

    def emit(
        self,
        level: str,
        source: str,
        action: str,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        logger.log(
            _LEVELS.get(level, logging.INFO),
            "[%s] %s %s", source, action, dict(details or {}),
        )


class DatabaseLogSink(LoggingSink):
    """LogSink that writes ``app_logs`` rows and mirrors them to the logger.

    Failures are logged and swallowed; emitting never raises.
    """

    def emit(
        self,
        level: str,
        source: str,
        action: str,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().emit(level, source, action, details)
        try:
            with get_session() as session:
                session.add(AppLog(
                    level=level if level in _LEVELS else "info",
                    source=source,
                    action=action,
                    details=dict(details or {}),
                ))
        except Exception as exc:
            logger.warning("Failed to persist log entry %s/%s: %s", source, action, exc)
