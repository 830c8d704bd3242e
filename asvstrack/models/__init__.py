"""Domain models for asvstrack."""

from asvstrack.models.requirement import (
    EDITABLE_FIELDS,
    Requirement,
    RequirementField,
    RequirementStatus,
    RequirementTemplate,
)
from asvstrack.models.section import Section, is_valid_slug, slugify
from asvstrack.models.stats import (
    Dashboard,
    OverallStat,
    SectionStat,
    percentage,
)

__all__ = [
    # Requirement
    "Requirement",
    "RequirementField",
    "RequirementStatus",
    "RequirementTemplate",
    "EDITABLE_FIELDS",
    # Section
    "Section",
    "is_valid_slug",
    "slugify",
    # Stats
    "Dashboard",
    "OverallStat",
    "SectionStat",
    "percentage",
]
