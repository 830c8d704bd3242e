"""Aggregation engine for section and overall validity statistics.

All functions here are pure: they take the current sections and
requirements of a user and recompute every statistic from scratch.
"""

import logging
from collections import defaultdict
from typing import Iterable

from asvstrack.aggregation.levels import LevelPolicy
from asvstrack.errors import InvariantViolation, ValidationError
from asvstrack.models import (
    Dashboard,
    OverallStat,
    Requirement,
    Section,
    SectionStat,
)

logger = logging.getLogger(__name__)

GOOD_BAND = 80.0
WARNING_BAND = 50.0


def _lookup_section(by_id: dict[str, Section], req: Requirement) -> Section:
    section = by_id.get(req.section_id)
    if section is None:
        raise InvariantViolation(
            f"Requirement '{req.id}' references unknown section '{req.section_id}'",
            section_id=req.section_id,
        )
    return section


def section_stat(
    section: Section,
    requirements: Iterable[Requirement],
    user_id: str | None = None,
) -> SectionStat:
    """Compute the statistic for one section of one user.

    ``user_id`` defaults to the owner of the first requirement.

    Raises:
        InvariantViolation: If a requirement belongs to another section
            or another user.
    """
    valid = 0
    total = 0
    owner = user_id
    for req in requirements:
        if req.section_id != section.id:
            raise InvariantViolation(
                f"Requirement '{req.id}' does not belong to section '{section.id}'",
                section_id=section.id,
            )
        if owner is None:
            owner = req.user_id
        elif req.user_id != owner:
            raise InvariantViolation(
                f"Requirement '{req.id}' of user '{req.user_id}' mixed into "
                f"section '{section.id}' of user '{owner}'",
                section_id=section.id,
            )
        total += 1
        if req.is_valid:
            valid += 1
    return SectionStat(
        section_id=section.id,
        section_name=section.name,
        section_slug=section.slug,
        order_index=section.order_index,
        valid_count=valid,
        total_count=total,
        user_id=owner,
    )


def compute_section_stats(
    sections: Iterable[Section],
    requirements: Iterable[Requirement],
) -> list[SectionStat]:
    """Compute per-section statistics for every owner in ``requirements``.

    Requirements are grouped by ``(section_id, user_id)``. Each owner gets
    a stat for every section, ordered by owner (first seen) and then by
    section order index; sections without requirements are included with
    ``total_count == 0``. With no requirements at all, one unowned stat per
    section is returned. A requirement referencing an unknown section
    yields an unavailable stat for that section id rather than being
    dropped.
    """
    by_id = {s.id: s for s in sections}
    owners: list[str | None] = []
    groups: dict[tuple[str, str | None], list[Requirement]] = {}
    unavailable: dict[tuple[str, str | None], SectionStat] = {}

    for req in requirements:
        if req.user_id not in owners:
            owners.append(req.user_id)
        try:
            section = _lookup_section(by_id, req)
        except InvariantViolation as e:
            key = (e.section_id, req.user_id)
            if key not in unavailable:
                logger.error("Section statistic unavailable: %s", e)
                unavailable[key] = SectionStat.unavailable(e.section_id, user_id=req.user_id)
            continue
        groups.setdefault((section.id, req.user_id), []).append(req)

    stats = []
    for owner in owners or [None]:
        owned = [
            section_stat(section, groups.get((section_id, owner), []), owner)
            for section_id, section in by_id.items()
        ]
        owned.sort(key=lambda s: (s.order_index, s.section_name))
        stats.extend(owned)
        stats.extend(s for key, s in unavailable.items() if key[1] == owner)
    return stats


def _single_owner(section_stats: list[SectionStat]) -> None:
    owners = {s.user_id for s in section_stats if s.user_id is not None}
    if len(owners) > 1:
        raise ValidationError(
            f"Statistics of {len(owners)} users cannot be combined; "
            "use build_user_dashboards for mixed requirement sets"
        )


def compute_overall_stats(
    section_stats: Iterable[SectionStat],
    level_policy: LevelPolicy | None = None,
) -> OverallStat:
    """Sum available section statistics of one user into the overall statistic.

    Raises:
        ValidationError: If the statistics belong to more than one user.
    """
    section_stats = list(section_stats)
    _single_owner(section_stats)
    policy = level_policy or LevelPolicy()
    valid_sum = 0
    total_sum = 0
    for stat in section_stats:
        if not stat.available:
            continue
        valid_sum += stat.valid_count
        total_sum += stat.total_count

    overall = OverallStat(valid_sum=valid_sum, total_sum=total_sum)
    overall.asvs_level_acquired = policy.classify(overall.overall_validity_percentage)
    return overall


def build_dashboard(
    sections: Iterable[Section],
    requirements: Iterable[Requirement],
    level_policy: LevelPolicy | None = None,
) -> Dashboard:
    """Compute section and overall statistics of one user in one pass.

    Raises:
        ValidationError: If the requirements belong to more than one user.
    """
    stats = compute_section_stats(sections, requirements)
    return Dashboard(
        sections=stats,
        overall=compute_overall_stats(stats, level_policy),
        unavailable_sections=[s.section_id for s in stats if not s.available],
    )


def build_user_dashboards(
    sections: Iterable[Section],
    requirements: Iterable[Requirement],
    level_policy: LevelPolicy | None = None,
) -> dict[str, Dashboard]:
    """Compute one dashboard per owning user.

    Requirements of different users never count toward each other's
    statistics.
    """
    sections = list(sections)
    by_user: dict[str, list[Requirement]] = defaultdict(list)
    for req in requirements:
        by_user[req.user_id].append(req)
    return {
        user_id: build_dashboard(sections, reqs, level_policy)
        for user_id, reqs in by_user.items()
    }


def unavailable_dashboard(level_policy: LevelPolicy | None = None) -> Dashboard:
    """Zero-valued dashboard marked as "data unavailable".

    Used when the store cannot be read, so presentation never confuses
    missing data with zero compliance.
    """
    policy = level_policy or LevelPolicy()
    return Dashboard(
        sections=[],
        overall=OverallStat(asvs_level_acquired=policy.base_level, available=False),
    )


def status_band(percentage: float) -> str:
    """Presentation band for a validity percentage."""
    if percentage >= GOOD_BAND:
        return "good"
    if percentage >= WARNING_BAND:
        return "warning"
    return "critical"


def recommendations(
    dashboard: Dashboard,
    threshold: float = GOOD_BAND,
    limit: int = 3,
) -> list[str]:
    """Improvement focus areas for the results view.

    Lists up to ``limit`` sections below ``threshold`` in display order,
    plus a starting hint when nothing has been marked valid yet.
    """
    overall = dashboard.overall
    if not overall.available or overall.overall_validity_percentage >= 100.0:
        return []

    items = [
        f"Review and address gaps in {s.section_name} ({s.validity_percentage:.1f}% complete)"
        for s in dashboard.sections
        if s.available and s.validity_percentage < threshold
    ][:limit]
    if overall.valid_sum == 0:
        items.append("Start by assessing requirements in key security areas")
    return items
