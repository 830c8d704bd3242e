"""Derived aggregate models.

These are never a source of truth: both are recomputed from the
requirement set of a user.
"""

from dataclasses import dataclass, field
from typing import Any


def percentage(part: int, whole: int) -> float:
    """Return ``100 * part / whole`` or 0.0 when ``whole`` is zero."""
    if whole <= 0:
        return 0.0
    return 100.0 * part / whole


@dataclass
class SectionStat:
    """Validity statistic for one section of one user."""

    section_id: str
    section_name: str
    section_slug: str
    order_index: int
    valid_count: int = 0
    total_count: int = 0
    available: bool = True
    user_id: str | None = None

    @property
    def validity_percentage(self) -> float:
        return percentage(self.valid_count, self.total_count)

    @property
    def assessed(self) -> bool:
        """False for a section without requirements (not yet assessed)."""
        return self.total_count > 0

    @classmethod
    def unavailable(
        cls,
        section_id: str,
        section_name: str = "",
        section_slug: str = "",
        order_index: int = 0,
        user_id: str | None = None,
    ) -> "SectionStat":
        return cls(
            section_id=section_id,
            section_name=section_name,
            section_slug=section_slug,
            order_index=order_index,
            available=False,
            user_id=user_id,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "section_id": self.section_id,
            "section_name": self.section_name,
            "section_slug": self.section_slug,
            "order_index": self.order_index,
            "valid_count": self.valid_count,
            "total_count": self.total_count,
            "validity_percentage": self.validity_percentage,
            "assessed": self.assessed,
            "available": self.available,
        }


@dataclass
class OverallStat:
    """Validity statistic across all sections of one user."""

    valid_sum: int = 0
    total_sum: int = 0
    asvs_level_acquired: str = "L1"
    available: bool = True

    @property
    def overall_validity_percentage(self) -> float:
        return percentage(self.valid_sum, self.total_sum)

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid_sum": self.valid_sum,
            "total_sum": self.total_sum,
            "overall_validity_percentage": self.overall_validity_percentage,
            "asvs_level_acquired": self.asvs_level_acquired,
            "available": self.available,
        }


@dataclass
class Dashboard:
    """Section and overall statistics as handed to presentation and export."""

    sections: list[SectionStat] = field(default_factory=list)
    overall: OverallStat = field(default_factory=OverallStat)
    unavailable_sections: list[str] = field(default_factory=list)

    @property
    def available(self) -> bool:
        return self.overall.available

    def to_dict(self) -> dict[str, Any]:
        return {
            "sections": [s.to_dict() for s in self.sections],
            "overall": self.overall.to_dict(),
            "unavailable_sections": list(self.unavailable_sections),
        }
