"""Error types and per-source failure tracking.

Search sources never propagate failures to the caller: the session guard
catches them, records an ``ErrorEvent`` here and commits an empty bucket.
Unlike a circuit breaker, a failing source is retried on the next query.
"""

import traceback
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Deque, Dict, Optional

from loguru import logger


class LaunchSearchError(Exception):
    """Base class for engine errors."""


class StoreError(LaunchSearchError):
    """The item store could not be read or written."""


class GatewayError(LaunchSearchError):
    """A launch or action gateway failed to perform a side effect."""


class InvalidFilterKey(LaunchSearchError, ValueError):
    """A filter toggle named an unknown flag or category."""


@dataclass
class ErrorEvent:
    """A single recorded failure."""
    timestamp: datetime
    source: str
    error_type: str
    message: str
    traceback: Optional[str] = None
    context: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {
            'timestamp': self.timestamp.isoformat(),
            'source': self.source,
            'error_type': self.error_type,
            'message': self.message,
            'context': self.context
        }


@dataclass
class SourceHealth:
    """Success and failure counters for one result source."""
    name: str
    success_count: int = 0
    error_count: int = 0
    consecutive_failures: int = 0
    last_error: Optional[ErrorEvent] = None
    last_success: Optional[datetime] = None

    @property
    def error_rate(self) -> float:
        total = self.error_count + self.success_count
        if total == 0:
            return 0.0
        return self.error_count / total

    def to_dict(self) -> Dict:
        return {
            'success_count': self.success_count,
            'error_count': self.error_count,
            'consecutive_failures': self.consecutive_failures,
            'error_rate': self.error_rate,
            'last_error': self.last_error.to_dict() if self.last_error else None,
        }


class HealthTracker:
    """Keeps a ``SourceHealth`` per source and a short history of failures."""

    def __init__(self, history_size: int = 50):
        self._health: Dict[str, SourceHealth] = {}
        self.history: Deque[ErrorEvent] = deque(maxlen=history_size)

    def get(self, source: str) -> SourceHealth:
        if source not in self._health:
            self._health[source] = SourceHealth(name=source)
        return self._health[source]

    def record_success(self, source: str) -> None:
        health = self.get(source)
        health.success_count += 1
        health.consecutive_failures = 0
        health.last_success = datetime.now()

    def record_failure(self, source: str, error: BaseException, **context) -> ErrorEvent:
        health = self.get(source)
        health.error_count += 1
        health.consecutive_failures += 1

        event = ErrorEvent(
            timestamp=datetime.now(),
            source=source,
            error_type=type(error).__name__,
            message=str(error),
            traceback=''.join(traceback.format_exception(type(error), error, error.__traceback__)),
            context=context
        )
        health.last_error = event
        self.history.append(event)

        if health.consecutive_failures >= 5:
            logger.warning(f"Source {source} has failed {health.consecutive_failures} times in a row")

        return event

    def summary(self) -> Dict[str, Dict]:
        return {name: health.to_dict() for name, health in self._health.items()}
