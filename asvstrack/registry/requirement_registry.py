"""Requirement registry: lifecycle operations over the store."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable

import yaml

from asvstrack.errors import NotFoundError, ValidationError
from asvstrack.models import (
    Requirement,
    RequirementField,
    RequirementStatus,
    RequirementTemplate,
    Section,
    is_valid_slug,
)
from asvstrack.persistence.base import RequirementStore, normalize_field_value
from asvstrack.search.index import (
    INSUFFICIENT_INPUT,
    MIN_QUERY_CHARS,
    QUICK_SEARCH_LIMIT,
    is_sufficient,
    quick_search,
)

logger = logging.getLogger(__name__)


class RequirementRegistry:
    """Record model for sections and per-user requirements.

    Enforces the requirement lifecycle rules on top of a
    :class:`RequirementStore`: batches are seeded ``Unanswered`` and replace
    the previous set, updates touch exactly one editable field of a row the
    caller owns, and search requires a minimum query length.
    """

    def __init__(
        self,
        store: RequirementStore,
        search_limit: int = QUICK_SEARCH_LIMIT,
        min_query_chars: int = MIN_QUERY_CHARS,
    ):
        self.store = store
        self.search_limit = search_limit
        self.min_query_chars = min_query_chars

    # ============ Sections ============

    async def list_sections(self) -> list[Section]:
        """List all sections in display order."""
        return await self.store.list_sections()

    async def get_section_by_slug(self, slug: str) -> Section:
        """Get a section by slug.

        Raises:
            NotFoundError: If no section has this slug.
        """
        section = await self.store.get_section_by_slug(slug)
        if section is None:
            raise NotFoundError(f"Section '{slug}' not found")
        return section

    async def create_section(self, name: str, slug: str, order_index: int) -> Section:
        """Create a section.

        Raises:
            ValidationError: If the name is empty or the slug is not URL-safe.
        """
        if not name or not name.strip():
            raise ValidationError("Section name is required")
        if not is_valid_slug(slug):
            raise ValidationError(f"Slug '{slug}' is not URL-safe")
        return await self.store.create_section(name.strip(), slug, order_index)

    # ============ Requirements ============

    async def create_batch(
        self,
        section_id: str,
        user_id: str,
        templates: Iterable[RequirementTemplate],
    ) -> list[Requirement]:
        """Replace the requirement set of (section, user) with ``templates``.

        This is a destructive replace, not a merge. Every created
        requirement starts as ``Unanswered``.

        Raises:
            ValidationError: If ``section_id`` is missing or unknown.
        """
        if not section_id:
            raise ValidationError("Section id is required")
        if not user_id:
            raise ValidationError("User id is required")
        templates = list(templates)
        if await self.store.get_section(section_id) is None:
            raise ValidationError(f"Section '{section_id}' does not exist")
        created = await self.store.replace_requirements(section_id, user_id, templates)
        logger.info(
            "Created batch of %d requirements for section=%s user=%s",
            len(created),
            section_id,
            user_id,
        )
        return created

    async def set_field(
        self,
        requirement_id: str,
        user_id: str,
        field: str | RequirementField,
        value: Any,
    ) -> datetime:
        """Update one editable field and return the new ``updated_at``.

        Raises:
            ValidationError: If the field is not editable or the value invalid.
            NotFoundError: If the requirement does not exist for this user.
        """
        field = field.value if isinstance(field, RequirementField) else field
        if isinstance(value, RequirementStatus):
            value = value.value
        value = normalize_field_value(field, value)
        return await self.store.update_requirement_field(requirement_id, user_id, field, value)

    async def set_status(
        self, requirement_id: str, user_id: str, status: RequirementStatus | str
    ) -> datetime:
        return await self.set_field(requirement_id, user_id, RequirementField.STATUS, status)

    async def list_requirements(self, section_id: str, user_id: str) -> list[Requirement]:
        """List requirements of (section, user) in creation order."""
        return await self.store.list_requirements(section_id, user_id)

    async def search(self, user_id: str, query: str | None) -> list[Requirement] | object:
        """Search a user's requirements across all sections.

        Returns ``INSUFFICIENT_INPUT`` for queries shorter than the minimum
        length, otherwise up to ``search_limit`` matches. Store candidates
        are re-checked for plain substring containment.
        """
        if not is_sufficient(query, self.min_query_chars):
            return INSUFFICIENT_INPUT
        candidates = await self.store.search_requirements(
            user_id, query.strip(), self.search_limit
        )
        return quick_search(candidates, query, self.search_limit, self.min_query_chars)


def load_templates_from_yaml(path: str | Path) -> list[RequirementTemplate]:
    """Load requirement templates from a YAML file.

    The file holds either a list of templates or a mapping with a
    ``requirements`` list.
    """
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or []
    if isinstance(data, dict):
        data = data.get("requirements", [])
    if not isinstance(data, list):
        raise ValidationError(f"{path}: expected a list of requirement templates")

    templates = []
    for index, item in enumerate(data):
        if not isinstance(item, dict) or not item.get("verification_requirement"):
            raise ValidationError(f"{path}: template {index} has no verification_requirement")
        templates.append(RequirementTemplate.from_dict(item))
    return templates
