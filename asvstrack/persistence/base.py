"""Store contract shared by the Supabase and SQL backends."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Sequence

from asvstrack.aggregation import (
    LevelPolicy,
    compute_overall_stats,
    compute_section_stats,
)
from asvstrack.errors import ValidationError
from asvstrack.models import (
    EDITABLE_FIELDS,
    OverallStat,
    Requirement,
    RequirementField,
    RequirementStatus,
    RequirementTemplate,
    Section,
    SectionStat,
)


def normalize_field_value(field: str, value: Any) -> Any:
    """Validate an editable field name and coerce its value.

    Raises:
        ValidationError: If the field is not editable or the status is unknown.
    """
    if field not in EDITABLE_FIELDS:
        raise ValidationError(
            f"Field '{field}' cannot be updated; expected one of {sorted(EDITABLE_FIELDS)}"
        )
    if field == RequirementField.STATUS.value:
        try:
            return RequirementStatus(value).value
        except ValueError:
            raise ValidationError(f"Unknown requirement status '{value}'") from None
    if value is not None and not isinstance(value, str):
        raise ValidationError(f"Field '{field}' expects text, got {type(value).__name__}")
    return value


class RequirementStore(ABC):
    """Persistent store for sections and per-user requirements.

    Requirements are always scoped by ``user_id`` at the query boundary;
    no method returns or mutates another user's rows.
    """

    @abstractmethod
    async def list_sections(self) -> list[Section]:
        """List all sections ordered by order index."""

    @abstractmethod
    async def get_section(self, section_id: str) -> Section | None:
        """Get a section by ID."""

    @abstractmethod
    async def get_section_by_slug(self, slug: str) -> Section | None:
        """Get a section by slug."""

    @abstractmethod
    async def create_section(self, name: str, slug: str, order_index: int) -> Section:
        """Create a section. Raises ValidationError on a duplicate slug."""

    @abstractmethod
    async def list_requirements(self, section_id: str, user_id: str) -> list[Requirement]:
        """List requirements of a (section, user) pair in creation order."""

    @abstractmethod
    async def list_user_requirements(self, user_id: str) -> list[Requirement]:
        """List every requirement owned by a user."""

    @abstractmethod
    async def replace_requirements(
        self,
        section_id: str,
        user_id: str,
        templates: Sequence[RequirementTemplate],
    ) -> list[Requirement]:
        """Atomically replace the requirement set of a (section, user) pair."""

    @abstractmethod
    async def update_requirement_field(
        self,
        requirement_id: str,
        user_id: str,
        field: str,
        value: Any,
    ) -> datetime:
        """Update one editable field and return the refreshed ``updated_at``.

        Raises:
            ValidationError: If the field is not editable.
            NotFoundError: If no row matches the id and owner.
        """

    @abstractmethod
    async def search_requirements(
        self, user_id: str, query: str, limit: int = 10
    ) -> list[Requirement]:
        """Substring search over text, section code and CWE."""

    async def ping(self) -> bool:
        """Return True if the store can be read."""
        await self.list_sections()
        return True

    async def get_section_stats(self, user_id: str) -> list[SectionStat]:
        """Per-section statistics for a user, ordered by order index."""
        sections = await self.list_sections()
        requirements = await self.list_user_requirements(user_id)
        return compute_section_stats(sections, requirements)

    async def get_overall_stats(
        self, user_id: str, level_policy: LevelPolicy | None = None
    ) -> OverallStat:
        """Overall statistic for a user."""
        return compute_overall_stats(await self.get_section_stats(user_id), level_policy)
