"""Section model."""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from asvstrack.models.requirement import parse_timestamp, utc_now

SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


def is_valid_slug(slug: str) -> bool:
    return bool(slug) and SLUG_PATTERN.match(slug) is not None


def slugify(name: str) -> str:
    """Derive a URL-safe slug from a display name."""
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


@dataclass
class Section:
    """A named, ordered category of security requirements.

    Examples:
    - Architecture (order 1)
    - Authentication (order 2)
    """

    id: str
    name: str
    slug: str
    order_index: int
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Section":
        return cls(
            id=str(row["id"]),
            name=row["name"],
            slug=row["slug"],
            order_index=int(row["order_index"]),
            created_at=parse_timestamp(row.get("created_at")) or utc_now(),
            updated_at=parse_timestamp(row.get("updated_at")) or utc_now(),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "order_index": self.order_index,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
