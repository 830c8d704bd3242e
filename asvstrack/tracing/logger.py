"""Activity events for saves, searches and API mutations.

Events are kept in a bounded in-memory buffer for inspection and mirrored
to the standard logger.
"""

import logging
import sys
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

LOG_FORMAT = "[%(asctime)s] %(levelname)s - %(name)s - %(message)s"


@dataclass
class ActivityEvent:
    """One traced activity."""

    event_type: str
    component: str
    message: str
    data: dict[str, Any] = field(default_factory=dict)
    level: int = logging.INFO
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> dict[str, Any]:
        event = asdict(self)
        event["level"] = logging.getLevelName(self.level)
        return event

    def render(self) -> str:
        line = f"[{self.component}] {self.event_type}: {self.message}"
        if self.data:
            line += f" | {self.data}"
        return line


def _attach_console_handler(logger: logging.Logger) -> None:
    if logger.handlers:
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


class ActivityTracer:
    """Bounded buffer of activity events mirrored to a logger."""

    def __init__(self, name: str = "asvstrack", max_events: int = 1000):
        self.logger = logging.getLogger(name)
        _attach_console_handler(self.logger)
        self._events: deque[ActivityEvent] = deque(maxlen=max_events)

    @property
    def max_events(self) -> int:
        return self._events.maxlen

    def log(
        self,
        event_type: str,
        component: str,
        message: str,
        data: dict[str, Any] | None = None,
        level: int = logging.INFO,
    ) -> ActivityEvent:
        """Record an event and mirror it to the logger.

        Args:
            event_type: Type of event (e.g., "save", "save_failed", "search").
            component: Name of the emitting component.
            message: Human-readable message.
            data: Optional additional data.
            level: Logging level for the mirrored log line.
        """
        event = ActivityEvent(event_type, component, message, data or {}, level)
        self._events.append(event)
        self.logger.log(level, event.render())
        return event

    def save_event(
        self,
        component: str,
        requirement_id: str,
        field_name: str,
        message: str,
        outcome: str = "saved",
        level: int = logging.INFO,
    ) -> ActivityEvent:
        """Record the outcome of a field save.

        ``outcome`` is appended to the event type, so ``"failed"`` yields
        ``save_failed``; ``"saved"`` yields plain ``save``.
        """
        event_type = "save" if outcome == "saved" else f"save_{outcome}"
        return self.log(
            event_type,
            component,
            message,
            {"requirement_id": requirement_id, "field": field_name},
            level=level,
        )

    def search_event(
        self,
        component: str,
        query: str,
        result_count: int | None = None,
        error: str | None = None,
    ) -> ActivityEvent:
        """Record a completed or failed quick search."""
        if error is not None:
            return self.log(
                "search_failed", component, error, {"query": query}, level=logging.WARNING
            )
        return self.log(
            "search",
            component,
            f"{result_count} result(s)",
            {"query": query, "result_count": result_count},
            level=logging.DEBUG,
        )

    def get_events(self, component: str | None = None) -> list[dict[str, Any]]:
        """Get recorded events as dicts, optionally filtered by component."""
        return [
            e.to_dict() for e in self._events if component is None or e.component == component
        ]

    def clear(self) -> None:
        self._events.clear()


_tracer: ActivityTracer | None = None


def setup_tracing(log_level: str = "INFO") -> ActivityTracer:
    """Replace the global tracer, logging at ``log_level``."""
    global _tracer
    _tracer = ActivityTracer()
    _tracer.logger.setLevel(getattr(logging, log_level.upper()))
    return _tracer


def get_tracer() -> ActivityTracer:
    """Get the global tracer instance."""
    global _tracer
    if _tracer is None:
        _tracer = ActivityTracer()
    return _tracer


def log_activity(
    event_type: str,
    component: str,
    message: str,
    data: dict[str, Any] | None = None,
    level: int = logging.INFO,
) -> ActivityEvent:
    """Record an event on the global tracer."""
    return get_tracer().log(event_type, component, message, data, level)
