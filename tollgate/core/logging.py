"""Logging for Tollgate.

Every module logs through a :class:`ContextualLogger`, a ``LoggerAdapter`` that
carries a dict of dimensions (``component``, ``permission``, ``actor`` ...).
Dimensions are attached to each record and rendered either as JSON fields or
as a ``key=value`` suffix depending on ``settings.LOG_FORMAT``.

Usage:
    from tollgate.core.logging import logger

    check_logger = logger.with_prefix("AccessChecker: ").with_context(component="checker")
    check_logger.info("granted", extra={"permission": "read"})
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, MutableMapping, Optional

from tollgate.core.config import LogFormat, settings

_RESERVED = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """Render records as single-line JSON documents."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable formatter that appends dimensions as ``key=value`` pairs."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)-7s %(name)s - %(message)s", "%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        extras = {
            k: v
            for k, v in record.__dict__.items()
            if k not in _RESERVED and not k.startswith("_")
        }
        if not extras:
            return base
        suffix = " ".join(f"{k}={v}" for k, v in sorted(extras.items()))
        return f"{base} [{suffix}]"


class ContextualLogger(logging.LoggerAdapter):
    """Logger adapter that carries contextual dimensions and an optional prefix."""

    def __init__(
        self,
        logger: logging.Logger,
        dimensions: Optional[dict[str, Any]] = None,
        prefix: str = "",
    ) -> None:
        """Create the adapter.

        Args:
            logger: The underlying stdlib logger.
            dimensions: Key/value pairs attached to every record.
            prefix: Text prepended to every message.
        """
        super().__init__(logger, dict(dimensions or {}))
        self.dimensions: dict[str, Any] = dict(dimensions or {})
        self.prefix = prefix

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping]:
        extra = dict(self.dimensions)
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        if self.prefix:
            msg = f"{self.prefix}{msg}"
        return msg, kwargs

    def with_context(self, **dimensions: Any) -> "ContextualLogger":
        """Return a new logger with additional dimensions merged in."""
        merged = {**self.dimensions, **dimensions}
        return ContextualLogger(self.logger, merged, self.prefix)

    def with_prefix(self, prefix: str) -> "ContextualLogger":
        """Return a new logger whose messages start with ``prefix``."""
        return ContextualLogger(self.logger, self.dimensions, prefix)


class LoggerConfigurator:
    """Builds the root ``tollgate`` logger once per process."""

    _configured = False

    @classmethod
    def configure_logger(
        cls, name: str, dimensions: Optional[dict[str, Any]] = None
    ) -> ContextualLogger:
        """Configure (once) and return a contextual logger for ``name``."""
        base = logging.getLogger(name)
        if not cls._configured:
            handler = logging.StreamHandler(sys.stdout)
            if settings.LOG_FORMAT == LogFormat.JSON:
                handler.setFormatter(JSONFormatter())
            else:
                handler.setFormatter(TextFormatter())
            base.handlers = [handler]
            base.setLevel(settings.LOG_LEVEL.upper())
            base.propagate = False
            cls._configured = True
        return ContextualLogger(base, dimensions)


logger = LoggerConfigurator.configure_logger("tollgate")
