"""Aggregation of requirement statuses into compliance statistics."""

from asvstrack.aggregation.engine import (
    build_dashboard,
    build_user_dashboards,
    compute_overall_stats,
    compute_section_stats,
    recommendations,
    section_stat,
    status_band,
    unavailable_dashboard,
)
from asvstrack.aggregation.levels import DEFAULT_THRESHOLDS, LevelPolicy

__all__ = [
    "build_dashboard",
    "build_user_dashboards",
    "compute_overall_stats",
    "compute_section_stats",
    "recommendations",
    "section_stat",
    "status_band",
    "unavailable_dashboard",
    "DEFAULT_THRESHOLDS",
    "LevelPolicy",
]
