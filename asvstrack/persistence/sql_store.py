"""SQLAlchemy-backed requirement store."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Sequence

from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from asvstrack.errors import NotFoundError, TransientIOError, ValidationError
from asvstrack.models import Requirement, RequirementStatus, RequirementTemplate, Section
from asvstrack.persistence.base import RequirementStore, normalize_field_value
from asvstrack.persistence.models import RequirementRecord, SectionRecord

logger = logging.getLogger(__name__)

_LIKE_ESCAPE = "\\"


def _like_pattern(query: str) -> str:
    escaped = (
        query.replace(_LIKE_ESCAPE, _LIKE_ESCAPE * 2)
        .replace("%", _LIKE_ESCAPE + "%")
        .replace("_", _LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"


def _section(record: SectionRecord) -> Section:
    return Section(
        id=record.id,
        name=record.name,
        slug=record.slug,
        order_index=record.order_index,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def _requirement(record: RequirementRecord) -> Requirement:
    return Requirement(
        id=record.id,
        section_id=record.section_id,
        user_id=record.user_id,
        verification_requirement=record.verification_requirement,
        status=RequirementStatus(record.status),
        comment=record.comment,
        tool_used=record.tool_used,
        source_code_reference=record.source_code_reference,
        asvs_level=record.asvs_level,
        section_code=record.section_code,
        area=record.area,
        nist=record.nist,
        cwe=record.cwe,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


class SqlRequirementStore(RequirementStore):
    """Store backed by Postgres (asyncpg) or SQLite (aiosqlite)."""

    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession]):
        self._sessionmaker = sessionmaker

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._sessionmaker() as session:
                yield session
        except (OperationalError, InterfaceError, OSError) as e:
            raise TransientIOError(f"Database unavailable: {e}") from e

    async def list_sections(self) -> list[Section]:
        async with self._session() as session:
            result = await session.execute(
                select(SectionRecord).order_by(SectionRecord.order_index, SectionRecord.name)
            )
            return [_section(r) for r in result.scalars()]

    async def get_section(self, section_id: str) -> Section | None:
        async with self._session() as session:
            record = await session.get(SectionRecord, section_id)
            return _section(record) if record else None

    async def get_section_by_slug(self, slug: str) -> Section | None:
        async with self._session() as session:
            result = await session.execute(select(SectionRecord).where(SectionRecord.slug == slug))
            record = result.scalars().first()
            return _section(record) if record else None

    async def create_section(self, name: str, slug: str, order_index: int) -> Section:
        record = SectionRecord(name=name, slug=slug, order_index=order_index)
        async with self._session() as session:
            session.add(record)
            try:
                await session.flush()
                section = _section(record)
                await session.commit()
            except IntegrityError:
                await session.rollback()
                raise ValidationError(f"Section slug '{slug}' already exists") from None
            return section

    async def list_requirements(self, section_id: str, user_id: str) -> list[Requirement]:
        async with self._session() as session:
            result = await session.execute(
                select(RequirementRecord)
                .where(
                    RequirementRecord.section_id == section_id,
                    RequirementRecord.user_id == user_id,
                )
                .order_by(RequirementRecord.created_at, RequirementRecord.position)
            )
            return [_requirement(r) for r in result.scalars()]

    async def list_user_requirements(self, user_id: str) -> list[Requirement]:
        async with self._session() as session:
            result = await session.execute(
                select(RequirementRecord)
                .where(RequirementRecord.user_id == user_id)
                .order_by(RequirementRecord.created_at, RequirementRecord.position)
            )
            return [_requirement(r) for r in result.scalars()]

    async def replace_requirements(
        self,
        section_id: str,
        user_id: str,
        templates: Sequence[RequirementTemplate],
    ) -> list[Requirement]:
        now = datetime.now(timezone.utc)
        records = [
            RequirementRecord(
                section_id=section_id,
                user_id=user_id,
                position=position,
                status=RequirementStatus.UNANSWERED.value,
                created_at=now,
                updated_at=now,
                **template.to_dict(),
            )
            for position, template in enumerate(templates)
        ]
        async with self._session() as session:
            async with session.begin():
                if await session.get(SectionRecord, section_id) is None:
                    raise ValidationError(f"Section '{section_id}' does not exist")
                await session.execute(
                    delete(RequirementRecord).where(
                        RequirementRecord.section_id == section_id,
                        RequirementRecord.user_id == user_id,
                    )
                )
                session.add_all(records)
                await session.flush()
                requirements = [_requirement(r) for r in records]
        logger.info(
            "Replaced requirements section=%s user=%s count=%d", section_id, user_id, len(records)
        )
        return requirements

    async def update_requirement_field(
        self,
        requirement_id: str,
        user_id: str,
        field: str,
        value: Any,
    ) -> datetime:
        value = normalize_field_value(field, value)
        updated_at = datetime.now(timezone.utc)
        async with self._session() as session:
            async with session.begin():
                result = await session.execute(
                    update(RequirementRecord)
                    .where(
                        RequirementRecord.id == requirement_id,
                        RequirementRecord.user_id == user_id,
                    )
                    .values({field: value, "updated_at": updated_at})
                )
                if result.rowcount == 0:
                    raise NotFoundError(f"Requirement '{requirement_id}' not found")
        return updated_at

    async def search_requirements(
        self, user_id: str, query: str, limit: int = 10
    ) -> list[Requirement]:
        pattern = _like_pattern(query.strip())
        async with self._session() as session:
            result = await session.execute(
                select(RequirementRecord)
                .where(
                    RequirementRecord.user_id == user_id,
                    or_(
                        RequirementRecord.verification_requirement.ilike(pattern, escape=_LIKE_ESCAPE),
                        RequirementRecord.section_code.ilike(pattern, escape=_LIKE_ESCAPE),
                        RequirementRecord.cwe.ilike(pattern, escape=_LIKE_ESCAPE),
                    ),
                )
                .order_by(RequirementRecord.created_at, RequirementRecord.position)
                .limit(limit)
            )
            return [_requirement(r) for r in result.scalars()]
