"""Supabase-backed requirement store using the PostgREST API."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Sequence

import httpx
from postgrest.exceptions import APIError
from supabase._async.client import AsyncClient

from asvstrack.errors import NotFoundError, TransientIOError, ValidationError
from asvstrack.models import Requirement, RequirementTemplate, Section
from asvstrack.models.requirement import parse_timestamp
from asvstrack.persistence.base import RequirementStore, normalize_field_value

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"
INVALID_TEXT_REPRESENTATION = "22P02"
FOREIGN_KEY_VIOLATION = "23503"


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _quote_filter_value(value: str) -> str:
    """Quote a substring pattern for a PostgREST ``or`` ilike filter.

    LIKE wildcards in the value are escaped. PostgREST rewrites every ``*``
    to ``%``, so a literal ``*`` becomes the single-character wildcard and
    callers re-check matches client-side. Reserved characters (commas,
    dots, parentheses) are safe inside quotes.
    """
    pattern = (
        value.replace("\\", "\\\\")
        .replace("%", "\\%")
        .replace("_", "\\_")
        .replace("*", "_")
    )
    quoted = pattern.replace("\\", "\\\\").replace('"', '\\"')
    return f'"*{quoted}*"'



class SupabaseRequirementStore(RequirementStore):
    """Store backed by the ``sections`` and ``requirements`` tables.

    ``replace_requirements`` goes through the ``replace_requirements``
    Postgres function so the delete and insert run in one transaction.
    """

    def __init__(self, client: AsyncClient):
        self.client = client

    async def _execute(self, query: Any) -> Any:
        try:
            return await query.execute()
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                raise ValidationError(e.message or "Duplicate value") from e
            if e.code in (INVALID_TEXT_REPRESENTATION, FOREIGN_KEY_VIOLATION):
                raise ValidationError(e.message or "Invalid value") from e
            raise TransientIOError(f"Supabase error {e.code}: {e.message}") from e
        except httpx.HTTPError as e:
            raise TransientIOError(f"Supabase unreachable: {e}") from e

    async def list_sections(self) -> list[Section]:
        response = await self._execute(
            self.client.table("sections").select("*").order("order_index")
        )
        return [Section.from_row(row) for row in (response.data or [])]

    async def get_section(self, section_id: str) -> Section | None:
        response = await self._execute(
            self.client.table("sections").select("*").eq("id", section_id).limit(1)
        )
        return Section.from_row(response.data[0]) if response.data else None

    async def get_section_by_slug(self, slug: str) -> Section | None:
        response = await self._execute(
            self.client.table("sections").select("*").eq("slug", slug).limit(1)
        )
        return Section.from_row(response.data[0]) if response.data else None

    async def create_section(self, name: str, slug: str, order_index: int) -> Section:
        response = await self._execute(
            self.client.table("sections").insert(
                {"name": name, "slug": slug, "order_index": order_index}
            )
        )
        return Section.from_row(response.data[0])

    async def list_requirements(self, section_id: str, user_id: str) -> list[Requirement]:
        response = await self._execute(
            self.client.table("requirements")
            .select("*")
            .eq("section_id", section_id)
            .eq("user_id", user_id)
            .order("created_at")
            .order("position")
        )
        return [Requirement.from_row(row) for row in (response.data or [])]

    async def list_user_requirements(self, user_id: str) -> list[Requirement]:
        response = await self._execute(
            self.client.table("requirements")
            .select("*")
            .eq("user_id", user_id)
            .order("created_at")
            .order("position")
        )
        return [Requirement.from_row(row) for row in (response.data or [])]

    async def replace_requirements(
        self,
        section_id: str,
        user_id: str,
        templates: Sequence[RequirementTemplate],
    ) -> list[Requirement]:
        response = await self._execute(
            self.client.rpc(
                "replace_requirements",
                {
                    "p_section_id": section_id,
                    "p_user_id": user_id,
                    "p_templates": [t.to_dict() for t in templates],
                },
            )
        )
        rows = response.data or []
        logger.info(
            "Replaced requirements section=%s user=%s count=%d", section_id, user_id, len(rows)
        )
        return [Requirement.from_row(row) for row in rows]

    async def update_requirement_field(
        self,
        requirement_id: str,
        user_id: str,
        field: str,
        value: Any,
    ) -> datetime:
        value = normalize_field_value(field, value)
        updated_at = _utc_now_iso()
        response = await self._execute(
            self.client.table("requirements")
            .update({field: value, "updated_at": updated_at})
            .eq("id", requirement_id)
            .eq("user_id", user_id)
        )
        if not response.data:
            raise NotFoundError(f"Requirement '{requirement_id}' not found")
        return parse_timestamp(response.data[0].get("updated_at") or updated_at)

    async def search_requirements(
        self, user_id: str, query: str, limit: int = 10
    ) -> list[Requirement]:
        needle = _quote_filter_value(query.strip())
        response = await self._execute(
            self.client.table("requirements")
            .select("*")
            .eq("user_id", user_id)
            .or_(
                f"verification_requirement.ilike.{needle},"
                f"section_code.ilike.{needle},"
                f"cwe.ilike.{needle}"
            )
            .order("created_at")
            .order("position")
            .limit(limit)
        )
        return [Requirement.from_row(row) for row in (response.data or [])]
