"""Results snapshot: loading the dashboard and rendering it as Markdown."""

import logging
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Any

from asvstrack.aggregation import (
    LevelPolicy,
    build_dashboard,
    build_user_dashboards,
    recommendations,
    status_band,
    unavailable_dashboard,
)
from asvstrack.errors import TransientIOError
from asvstrack.models import Dashboard
from asvstrack.persistence.base import RequirementStore
from asvstrack.search.index import matches

logger = logging.getLogger(__name__)

BAND_EMOJI = {"good": "✅", "warning": "⚠️", "critical": "❌"}
SECTION_FILTER_FIELDS = ("section_name",)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def report_filename(extension: str = "pdf", on: date | None = None) -> str:
    """Default export file name, e.g. ``asvs-l1-results-2024-05-01.pdf``."""
    on = on or datetime.now(timezone.utc).date()
    return f"asvs-l1-results-{on.isoformat()}.{extension}"


async def load_dashboard(
    store: RequirementStore,
    user_id: str,
    level_policy: LevelPolicy | None = None,
) -> Dashboard:
    """Read sections and requirements and compute the user's dashboard.

    Rows owned by other users never reach the statistics. A read failure
    degrades to a zero-valued dashboard marked unavailable.
    """
    try:
        sections = await store.list_sections()
        requirements = await store.list_user_requirements(user_id)
    except TransientIOError:
        logger.exception("Failed to load dashboard data for user=%s", user_id)
        return unavailable_dashboard(level_policy)
    dashboards = build_user_dashboards(sections, requirements, level_policy)
    if user_id not in dashboards:
        return build_dashboard(sections, [], level_policy)
    return dashboards[user_id]


def filter_sections(dashboard: Dashboard, section_query: str | None) -> Dashboard:
    """Narrow the section list to names containing ``section_query``.

    The overall statistic is kept; recommendations computed from the
    result only consider the matching sections.
    """
    if not section_query or not section_query.strip():
        return dashboard
    return replace(
        dashboard,
        sections=[s for s in dashboard.sections if matches(s, section_query, SECTION_FILTER_FIELDS)],
    )


def dashboard_payload(
    dashboard: Dashboard,
    threshold: float = 80.0,
    limit: int = 3,
    section_query: str | None = None,
) -> dict[str, Any]:
    """Serializable results snapshot handed to presentation and export."""
    dashboard = filter_sections(dashboard, section_query)
    payload = dashboard.to_dict()
    payload["generated_at"] = _utc_now()
    if section_query:
        payload["section_query"] = section_query
    payload["recommendations"] = recommendations(dashboard, threshold=threshold, limit=limit)
    for section in payload["sections"]:
        section["band"] = status_band(section["validity_percentage"])
    return payload


def render_markdown(
    dashboard: Dashboard,
    threshold: float = 80.0,
    limit: int = 3,
    section_query: str | None = None,
) -> str:
    """Render the results snapshot as Markdown."""
    dashboard = filter_sections(dashboard, section_query)
    overall = dashboard.overall
    lines = [
        "# ASVS L1 Compliance Results",
        "",
        f"- **Generated**: {_utc_now()}",
    ]

    if not overall.available:
        lines.extend(["", "> Data unavailable: statistics could not be loaded.", ""])
        return "\n".join(lines)

    lines.extend([
        f"- **ASVS Level Acquired**: {overall.asvs_level_acquired}",
        f"- **Overall Validity**: {overall.overall_validity_percentage:.1f}% "
        f"({overall.valid_sum}/{overall.total_sum} valid)",
        "",
        "## Sections",
        "",
        "| Section | Valid | Total | Validity |",
        "|---------|-------|-------|----------|",
    ])

    for stat in dashboard.sections:
        if not stat.available:
            lines.append(f"| {stat.section_name or stat.section_id} | - | - | unavailable |")
            continue
        if not stat.assessed:
            lines.append(f"| {stat.section_name} | 0 | 0 | not assessed |")
            continue
        emoji = BAND_EMOJI[status_band(stat.validity_percentage)]
        lines.append(
            f"| {stat.section_name} | {stat.valid_count} | {stat.total_count} "
            f"| {emoji} {stat.validity_percentage:.1f}% |"
        )

    items = recommendations(dashboard, threshold=threshold, limit=limit)
    if items:
        lines.extend(["", "## Improvement Recommendations", ""])
        lines.extend(f"- {item}" for item in items)

    lines.append("")
    return "\n".join(lines)
