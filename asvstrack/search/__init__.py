"""Quick search and in-page filtering of requirements."""

from asvstrack.search.debounce import (
    DebouncedSearch,
    SearchSnapshot,
    SearchState,
)
from asvstrack.search.index import (
    FILTER_FIELDS,
    INSUFFICIENT_INPUT,
    MIN_QUERY_CHARS,
    QUICK_SEARCH_FIELDS,
    QUICK_SEARCH_LIMIT,
    filter_requirements,
    is_sufficient,
    matches,
    matches_quick_search,
    quick_search,
)

__all__ = [
    "DebouncedSearch",
    "SearchSnapshot",
    "SearchState",
    "FILTER_FIELDS",
    "INSUFFICIENT_INPUT",
    "MIN_QUERY_CHARS",
    "QUICK_SEARCH_FIELDS",
    "QUICK_SEARCH_LIMIT",
    "filter_requirements",
    "is_sufficient",
    "matches",
    "matches_quick_search",
    "quick_search",
]
