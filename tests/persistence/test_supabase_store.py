"""SupabaseRequirementStore tests with a mocked async client."""

from datetime import datetime, timezone

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock
from postgrest.exceptions import APIError

from asvstrack.errors import NotFoundError, TransientIOError, ValidationError
from asvstrack.models import RequirementStatus, RequirementTemplate
from asvstrack.persistence.supabase_store import SupabaseRequirementStore, _quote_filter_value

SECTION_ROW = {
    "id": "s-arch",
    "name": "Architecture",
    "slug": "architecture",
    "order_index": 1,
    "created_at": "2024-05-01T12:00:00Z",
    "updated_at": "2024-05-01T12:00:00Z",
}


def _requirement_row(req_id: str, **overrides) -> dict:
    row = {
        "id": req_id,
        "section_id": "s-arch",
        "user_id": "user-a",
        "position": 0,
        "verification_requirement": f"Requirement {req_id}",
        "status": "Unanswered",
        "comment": None,
        "tool_used": None,
        "source_code_reference": None,
        "asvs_level": "L1",
        "section_code": "1.1.1",
        "area": "Architecture",
        "nist": None,
        "cwe": None,
        "created_at": "2024-05-01T12:00:00Z",
        "updated_at": "2024-05-01T12:00:00Z",
    }
    row.update(overrides)
    return row


def _query(data=None, error=None):
    """PostgREST builder mock whose filter methods return itself."""
    query = MagicMock()
    for name in ("select", "eq", "order", "limit", "insert", "update", "or_"):
        getattr(query, name).return_value = query
    if error is not None:
        query.execute = AsyncMock(side_effect=error)
    else:
        query.execute = AsyncMock(return_value=MagicMock(data=data))
    return query


def _client(query):
    client = MagicMock()
    client.table.return_value = query
    client.rpc.return_value = query
    return client


class TestSupabaseReads:
    """Tests for reading sections and requirements."""

    @pytest.mark.asyncio
    async def test_list_sections_orders_by_order_index(self):
        mock_client = MagicMock()
        mock_client.table.return_value.select.return_value.order.return_value.execute = AsyncMock(
            return_value=MagicMock(data=[SECTION_ROW])
        )

        store = SupabaseRequirementStore(mock_client)
        result = await store.list_sections()

        assert len(result) == 1
        assert result[0].slug == "architecture"
        mock_client.table.assert_called_with("sections")
        mock_client.table.return_value.select.return_value.order.assert_called_with("order_index")

    @pytest.mark.asyncio
    async def test_get_section_by_slug_returns_none_when_missing(self):
        query = _query(data=[])
        store = SupabaseRequirementStore(_client(query))

        assert await store.get_section_by_slug("nope") is None
        query.eq.assert_called_with("slug", "nope")

    @pytest.mark.asyncio
    async def test_list_requirements_scoped_to_user(self):
        query = _query(data=[_requirement_row("r1"), _requirement_row("r2", status="Valid")])
        store = SupabaseRequirementStore(_client(query))

        result = await store.list_requirements("s-arch", "user-a")

        assert [r.id for r in result] == ["r1", "r2"]
        assert result[1].status == RequirementStatus.VALID
        query.eq.assert_any_call("section_id", "s-arch")
        query.eq.assert_any_call("user_id", "user-a")
        assert [c.args[0] for c in query.order.call_args_list] == ["created_at", "position"]

    @pytest.mark.asyncio
    async def test_section_stats_include_empty_sections(self):
        sections = _query(data=[SECTION_ROW, {**SECTION_ROW, "id": "s-auth", "slug": "authentication", "name": "Authentication", "order_index": 2}])
        requirements = _query(data=[_requirement_row("r1", status="Valid"), _requirement_row("r2")])
        client = MagicMock()
        client.table.side_effect = lambda name: sections if name == "sections" else requirements
        store = SupabaseRequirementStore(client)

        stats = await store.get_section_stats("user-a")
        overall = await store.get_overall_stats("user-a")

        assert [(s.section_slug, s.valid_count, s.total_count) for s in stats] == [
            ("architecture", 1, 2),
            ("authentication", 0, 0),
        ]
        assert overall.overall_validity_percentage == 50.0


class TestSupabaseWrites:
    """Tests for batch replace and field updates."""

    @pytest.mark.asyncio
    async def test_replace_requirements_calls_rpc_once(self):
        query = _query(data=[_requirement_row("r1"), _requirement_row("r2", position=1)])
        client = _client(query)
        store = SupabaseRequirementStore(client)
        templates = [
            RequirementTemplate(verification_requirement="one", section_code="1.1.1"),
            RequirementTemplate(verification_requirement="two", section_code="1.1.2"),
        ]

        created = await store.replace_requirements("s-arch", "user-a", templates)

        assert len(created) == 2
        client.rpc.assert_called_once()
        name, params = client.rpc.call_args.args
        assert name == "replace_requirements"
        assert params["p_section_id"] == "s-arch"
        assert params["p_user_id"] == "user-a"
        assert [t["verification_requirement"] for t in params["p_templates"]] == ["one", "two"]
        client.table.assert_not_called()

    @pytest.mark.asyncio
    async def test_update_field_returns_stored_timestamp(self):
        query = _query(data=[_requirement_row("r1", status="Valid", updated_at="2024-05-02T08:30:00Z")])
        store = SupabaseRequirementStore(_client(query))

        updated_at = await store.update_requirement_field("r1", "user-a", "status", "Valid")

        assert updated_at == datetime(2024, 5, 2, 8, 30, tzinfo=timezone.utc)
        payload = query.update.call_args.args[0]
        assert payload["status"] == "Valid"
        assert "updated_at" in payload
        query.eq.assert_any_call("user_id", "user-a")

    @pytest.mark.asyncio
    async def test_update_without_matching_row_is_not_found(self):
        store = SupabaseRequirementStore(_client(_query(data=[])))

        with pytest.raises(NotFoundError):
            await store.update_requirement_field("r1", "user-b", "comment", "x")

    @pytest.mark.asyncio
    async def test_update_unknown_field_never_reaches_client(self):
        query = _query(data=[])
        store = SupabaseRequirementStore(_client(query))

        with pytest.raises(ValidationError):
            await store.update_requirement_field("r1", "user-a", "section_id", "s-auth")

        query.execute.assert_not_called()


class TestSupabaseSearch:
    """Tests for cross-section search."""

    @pytest.mark.asyncio
    async def test_search_builds_or_filter_and_limit(self):
        query = _query(data=[_requirement_row("r1")])
        store = SupabaseRequirementStore(_client(query))

        result = await store.search_requirements("user-a", " auth ", limit=10)

        assert len(result) == 1
        query.or_.assert_called_once_with(
            'verification_requirement.ilike."*auth*",'
            'section_code.ilike."*auth*",'
            'cwe.ilike."*auth*"'
        )
        query.limit.assert_called_with(10)
        query.eq.assert_called_with("user_id", "user-a")

    @pytest.mark.asyncio
    async def test_search_escapes_like_wildcards(self):
        query = _query(data=[])
        store = SupabaseRequirementStore(_client(query))

        await store.search_requirements("user-a", "1_1%", limit=10)

        needle = r'"*1\\_1\\%*"'
        query.or_.assert_called_once_with(
            f"verification_requirement.ilike.{needle},"
            f"section_code.ilike.{needle},"
            f"cwe.ilike.{needle}"
        )

    def test_quote_filter_value_handles_star_and_quotes(self):
        assert _quote_filter_value("a*b") == '"*a_b*"'
        assert _quote_filter_value('say "hi"') == r'"*say \"hi\"*"'
        assert _quote_filter_value("C:\\") == r'"*C:\\\\*"'


class TestSupabaseErrors:
    """Tests for error mapping."""

    @pytest.mark.asyncio
    async def test_network_error_is_transient(self):
        store = SupabaseRequirementStore(_client(_query(error=httpx.ConnectError("refused"))))

        with pytest.raises(TransientIOError):
            await store.list_sections()

    @pytest.mark.asyncio
    async def test_unique_violation_is_validation_error(self):
        error = APIError({"message": "duplicate key", "code": "23505", "hint": None, "details": None})
        store = SupabaseRequirementStore(_client(_query(error=error)))

        with pytest.raises(ValidationError):
            await store.create_section("Architecture", "architecture", 1)

    @pytest.mark.asyncio
    async def test_other_api_errors_are_transient(self):
        error = APIError({"message": "timeout", "code": "57014", "hint": None, "details": None})
        store = SupabaseRequirementStore(_client(_query(error=error)))

        with pytest.raises(TransientIOError):
            await store.list_user_requirements("user-a")
