"""Structured logging utilities for reconciliation runs."""
import json
import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Optional


class StructuredLogger:
    """Structured logger that stamps every entry with the current run's ID."""

    def __init__(self, logger_name: str):
        self.logger = logging.getLogger(logger_name)
        self._correlation_id: Optional[str] = None

    @property
    def correlation_id(self) -> Optional[str]:
        return self._correlation_id

    def generate_correlation_id(self) -> str:
        """Generate new run correlation ID."""
        return f"RUN_{uuid.uuid4().hex[:12]}"

    @contextmanager
    def run_context(self, correlation_id: Optional[str] = None) -> Iterator[str]:
        """Scope log entries to one pipeline run; yields the run ID."""
        previous = self._correlation_id
        self._correlation_id = correlation_id or self.generate_correlation_id()
        try:
            yield self._correlation_id
        finally:
            self._correlation_id = previous

    def _emit(self, level: int, message: str, **kwargs) -> None:
        if not self.logger.isEnabledFor(level):
            return
        entry = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": logging.getLevelName(level),
            "message": message,
            "correlation_id": self._correlation_id or "none",
        }
        if kwargs:
            entry["context"] = kwargs
        self.logger.log(level, json.dumps(entry, default=str))

    def info(self, message: str, **kwargs):
        self._emit(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._emit(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs):
        self._emit(logging.ERROR, message, **kwargs)

    def debug(self, message: str, **kwargs):
        self._emit(logging.DEBUG, message, **kwargs)


def get_structured_logger(name: str) -> StructuredLogger:
    """Get or create structured logger."""
    return StructuredLogger(name)
