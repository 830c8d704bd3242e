"""Substring matching for quick search and the in-page filter."""

from typing import Iterable

from asvstrack.models import Requirement

MIN_QUERY_CHARS = 2
QUICK_SEARCH_LIMIT = 10


class _InsufficientInput:
    """Marker for a query too short to evaluate.

    Distinct from an empty result list, which means "no matches".
    """

    _instance: "_InsufficientInput | None" = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "INSUFFICIENT_INPUT"

    def __bool__(self) -> bool:
        return False


INSUFFICIENT_INPUT = _InsufficientInput()

QUICK_SEARCH_FIELDS = ("verification_requirement", "section_code", "cwe")
FILTER_FIELDS = ("verification_requirement", "comment")


def _contains(value: str | None, needle: str) -> bool:
    return bool(value) and needle in value.lower()


def is_sufficient(query: str | None, min_chars: int = MIN_QUERY_CHARS) -> bool:
    return query is not None and len(query.strip()) >= min_chars


def matches(requirement: Requirement, query: str, fields: Iterable[str]) -> bool:
    """Case-insensitive substring containment against the given fields."""
    needle = query.strip().lower()
    return any(_contains(getattr(requirement, name, None), needle) for name in fields)


def matches_quick_search(requirement: Requirement, query: str) -> bool:
    return matches(requirement, query, QUICK_SEARCH_FIELDS)


def quick_search(
    requirements: Iterable[Requirement],
    query: str | None,
    limit: int = QUICK_SEARCH_LIMIT,
    min_chars: int = MIN_QUERY_CHARS,
) -> list[Requirement] | _InsufficientInput:
    """Cross-section search capped at ``limit`` results, in input order."""
    if not is_sufficient(query, min_chars):
        return INSUFFICIENT_INPUT
    results = []
    for req in requirements:
        if matches_quick_search(req, query):
            results.append(req)
            if len(results) >= limit:
                break
    return results


def filter_requirements(requirements: Iterable[Requirement], query: str | None) -> list[Requirement]:
    """In-page filter over an already loaded section list.

    Synchronous and unbounded. An empty query keeps every requirement.
    """
    requirements = list(requirements)
    if not query or not query.strip():
        return requirements
    return [req for req in requirements if matches(req, query, FILTER_FIELDS)]
