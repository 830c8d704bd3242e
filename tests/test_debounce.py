"""Debounced quick search tests."""

import asyncio

import pytest

from asvstrack.search import INSUFFICIENT_INPUT, DebouncedSearch, SearchState

DELAY = 0.02


class RecordingSearch:
    """Search function that records the queries it evaluated."""

    def __init__(self, results=None, delays=None, error=None):
        self.calls: list[str] = []
        self.results = results or {}
        self.delays = delays or {}
        self.error = error

    async def __call__(self, query: str):
        self.calls.append(query)
        await asyncio.sleep(self.delays.get(query, 0))
        if self.error:
            raise self.error
        return self.results.get(query, [])


class TestDebouncedSearch:
    """Tests for DebouncedSearch."""

    @pytest.mark.asyncio
    async def test_only_last_query_is_evaluated(self):
        search_fn = RecordingSearch(results={"auth": ["hit"]})
        debounced = DebouncedSearch(search_fn, delay=DELAY)

        debounced.update("au")
        debounced.update("aut")
        debounced.update("auth")
        snapshot = await debounced.wait()

        assert search_fn.calls == ["auth"]
        assert snapshot.state == SearchState.READY
        assert snapshot.results == ["hit"]

    @pytest.mark.asyncio
    async def test_short_query_settles_without_searching(self):
        search_fn = RecordingSearch()
        debounced = DebouncedSearch(search_fn, delay=DELAY)

        result = await debounced.search("a")

        assert result is INSUFFICIENT_INPUT
        assert debounced.snapshot.state == SearchState.INSUFFICIENT_INPUT
        await asyncio.sleep(DELAY * 2)
        assert search_fn.calls == []

    @pytest.mark.asyncio
    async def test_short_query_cancels_pending_search(self):
        search_fn = RecordingSearch()
        debounced = DebouncedSearch(search_fn, delay=DELAY)

        debounced.update("auth")
        debounced.update("a")
        await asyncio.sleep(DELAY * 3)

        assert search_fn.calls == []
        assert debounced.snapshot.state == SearchState.INSUFFICIENT_INPUT

    @pytest.mark.asyncio
    async def test_stale_result_is_discarded(self):
        search_fn = RecordingSearch(
            results={"slow": ["old"], "fast": ["new"]},
            delays={"slow": DELAY * 5},
        )
        debounced = DebouncedSearch(search_fn, delay=DELAY)

        debounced.update("slow")
        await asyncio.sleep(DELAY * 2)  # "slow" is now in flight
        result = await debounced.search("fast")
        await asyncio.sleep(DELAY * 6)  # let "slow" complete

        assert search_fn.calls == ["slow", "fast"]
        assert result == ["new"]
        assert debounced.snapshot.results == ["new"]
        assert debounced.snapshot.query == "fast"

    @pytest.mark.asyncio
    async def test_failure_is_reported_as_failed_state(self):
        debounced = DebouncedSearch(RecordingSearch(error=RuntimeError("boom")), delay=DELAY)

        debounced.update("auth")
        snapshot = await debounced.wait()

        assert snapshot.state == SearchState.FAILED
        assert snapshot.error == "boom"

    @pytest.mark.asyncio
    async def test_search_raises_failure_instead_of_empty_results(self):
        debounced = DebouncedSearch(RecordingSearch(error=RuntimeError("boom")), delay=DELAY)

        with pytest.raises(RuntimeError, match="boom"):
            await debounced.search("auth")

        assert debounced.snapshot.state == SearchState.FAILED

    @pytest.mark.asyncio
    async def test_cancel_drops_pending_search(self):
        search_fn = RecordingSearch()
        debounced = DebouncedSearch(search_fn, delay=DELAY)

        debounced.update("auth")
        debounced.cancel()
        await asyncio.sleep(DELAY * 3)

        assert search_fn.calls == []
        assert debounced.snapshot.state == SearchState.IDLE

    @pytest.mark.asyncio
    async def test_each_update_starts_a_generation(self):
        debounced = DebouncedSearch(RecordingSearch(), delay=DELAY)

        first = debounced.update("ab")
        second = debounced.update("abc")
        debounced.cancel()

        assert second.generation == first.generation + 1
        assert first.state == SearchState.PENDING
