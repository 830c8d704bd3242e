"""Debounced, last-query-wins evaluation of the global quick search."""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable

from asvstrack.models import Requirement
from asvstrack.search.index import INSUFFICIENT_INPUT, MIN_QUERY_CHARS, is_sufficient

logger = logging.getLogger(__name__)

DEFAULT_DELAY_SECONDS = 0.3

SearchFn = Callable[[str], Awaitable[list[Requirement]]]


class SearchState(str, Enum):
    """State of the quick search as seen by presentation."""

    IDLE = "idle"
    INSUFFICIENT_INPUT = "insufficient_input"
    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


@dataclass
class SearchSnapshot:
    """Result of the most recent query generation."""

    state: SearchState
    query: str = ""
    generation: int = 0
    results: list[Requirement] = field(default_factory=list)
    error: str | None = None
    cause: Exception | None = field(default=None, repr=False, compare=False)


class DebouncedSearch:
    """Evaluates a query only after ``delay`` seconds without new input.

    Each call to :meth:`update` starts a new generation and cancels the
    pending timer. An evaluation that completes for an older generation is
    discarded, so a slow earlier search can never overwrite a later one.
    """

    def __init__(
        self,
        search_fn: SearchFn,
        delay: float = DEFAULT_DELAY_SECONDS,
        min_chars: int = MIN_QUERY_CHARS,
    ):
        self.search_fn = search_fn
        self.delay = delay
        self.min_chars = min_chars
        self.snapshot = SearchSnapshot(state=SearchState.IDLE)
        self._generation = 0
        self._timer: asyncio.TimerHandle | None = None
        self._inflight: set[asyncio.Task] = set()
        self._settled = asyncio.Event()
        self._settled.set()

    @property
    def generation(self) -> int:
        return self._generation

    def update(self, query: str) -> SearchSnapshot:
        """Register a keystroke. Must be called from a running event loop."""
        self._generation += 1
        generation = self._generation
        self._cancel_timer()

        if not is_sufficient(query, self.min_chars):
            self.snapshot = SearchSnapshot(
                state=SearchState.INSUFFICIENT_INPUT,
                query=query,
                generation=generation,
            )
            self._settled.set()
            return self.snapshot

        self.snapshot = SearchSnapshot(
            state=SearchState.PENDING,
            query=query,
            generation=generation,
        )
        self._settled.clear()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.delay, self._fire, query, generation)
        return self.snapshot

    def cancel(self) -> None:
        """Drop the pending evaluation and invalidate in-flight ones."""
        self._generation += 1
        self._cancel_timer()
        self.snapshot = SearchSnapshot(state=SearchState.IDLE, generation=self._generation)
        self._settled.set()

    async def wait(self) -> SearchSnapshot:
        """Wait until the current generation has settled."""
        await self._settled.wait()
        return self.snapshot

    async def search(self, query: str) -> list[Requirement] | object:
        """Update and wait. Returns results or ``INSUFFICIENT_INPUT``.

        Raises:
            Exception: Whatever the search function raised for this query.
        """
        self.update(query)
        snapshot = await self.wait()
        if snapshot.state == SearchState.INSUFFICIENT_INPUT:
            return INSUFFICIENT_INPUT
        if snapshot.state == SearchState.FAILED:
            raise snapshot.cause
        return list(snapshot.results)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self, query: str, generation: int) -> None:
        self._timer = None
        task = asyncio.get_running_loop().create_task(self._evaluate(query, generation))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _evaluate(self, query: str, generation: int) -> None:
        try:
            results = await self.search_fn(query)
        except Exception as e:
            logger.exception("Search failed for query=%r", query)
            self._apply(
                SearchSnapshot(
                    state=SearchState.FAILED,
                    query=query,
                    generation=generation,
                    error=str(e),
                    cause=e,
                )
            )
            return
        self._apply(
            SearchSnapshot(
                state=SearchState.READY,
                query=query,
                generation=generation,
                results=list(results),
            )
        )

    def _apply(self, snapshot: SearchSnapshot) -> bool:
        if snapshot.generation != self._generation:
            logger.debug(
                "Discarding stale search generation=%s current=%s",
                snapshot.generation,
                self._generation,
            )
            return False
        self.snapshot = snapshot
        self._settled.set()
        return True
