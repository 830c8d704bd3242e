"""Tracing and logging for asvstrack."""

from .logger import ActivityTracer, get_tracer, log_activity, setup_tracing

__all__ = [
    "ActivityTracer",
    "get_tracer",
    "log_activity",
    "setup_tracing",
]
