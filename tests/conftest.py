"""Shared fixtures for asvstrack tests."""

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker

from asvstrack.db import create_engine_for_url, create_schema
from asvstrack.models import Requirement, RequirementStatus, Section
from asvstrack.persistence.sql_store import SqlRequirementStore

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_section(section_id: str, name: str, order_index: int, slug: str | None = None) -> Section:
    return Section(
        id=section_id,
        name=name,
        slug=slug or name.lower().replace(" ", "-"),
        order_index=order_index,
    )


def make_requirement(
    req_id: str,
    section_id: str,
    status: RequirementStatus = RequirementStatus.UNANSWERED,
    user_id: str = "user-a",
    offset: int = 0,
    **kwargs,
) -> Requirement:
    created = BASE_TIME + timedelta(seconds=offset)
    return Requirement(
        id=req_id,
        section_id=section_id,
        user_id=user_id,
        status=status,
        created_at=created,
        updated_at=created,
        **kwargs,
    )


@pytest.fixture
def sections():
    """Three sections in display order."""
    return [
        make_section("s-arch", "Architecture", 1),
        make_section("s-auth", "Authentication", 2),
        make_section("s-sess", "Session Management", 3),
    ]


@pytest_asyncio.fixture
async def sql_store():
    """SqlRequirementStore over an in-memory SQLite database."""
    engine = create_engine_for_url("sqlite+aiosqlite:///:memory:")
    await create_schema(engine)
    store = SqlRequirementStore(async_sessionmaker(engine, expire_on_commit=False))
    yield store
    await engine.dispose()


@pytest.fixture
def make_req():
    """Factory for in-memory requirements."""
    return make_requirement
