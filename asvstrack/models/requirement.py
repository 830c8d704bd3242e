"""Requirement models for the ASVS checklist."""

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class RequirementStatus(str, Enum):
    """Verification status of a requirement.

    Every state is reachable from every other one by direct user action.
    UNANSWERED is the only initial state.
    """

    VALID = "Valid"
    NON_VALID = "Non-valid"
    NOT_APPLICABLE = "Not Applicable"
    UNANSWERED = "Unanswered"


class RequirementField(str, Enum):
    """Fields an assessing user may update on a requirement."""

    STATUS = "status"
    COMMENT = "comment"
    TOOL_USED = "tool_used"
    SOURCE_CODE_REFERENCE = "source_code_reference"


EDITABLE_FIELDS: frozenset[str] = frozenset(f.value for f in RequirementField)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a Postgres/ISO timestamp, tolerating the trailing ``Z``."""
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


@dataclass
class RequirementTemplate:
    """Admin-authored definition of a checklist item.

    Templates carry the classification metadata only; status and
    annotations are seeded when the batch is created.
    """

    verification_requirement: str
    asvs_level: str | None = "L1"
    section_code: str | None = None
    area: str | None = None
    nist: str | None = None
    cwe: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RequirementTemplate":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def to_dict(self) -> dict[str, Any]:
        return {
            "verification_requirement": self.verification_requirement,
            "asvs_level": self.asvs_level,
            "section_code": self.section_code,
            "area": self.area,
            "nist": self.nist,
            "cwe": self.cwe,
        }


@dataclass
class Requirement:
    """A checklist item owned by one user within one section."""

    id: str
    section_id: str
    user_id: str
    verification_requirement: str | None = None
    status: RequirementStatus = RequirementStatus.UNANSWERED
    comment: str | None = None
    tool_used: str | None = None
    source_code_reference: str | None = None
    asvs_level: str | None = None
    section_code: str | None = None
    area: str | None = None
    nist: str | None = None
    cwe: str | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def is_valid(self) -> bool:
        return self.status == RequirementStatus.VALID

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Requirement":
        """Build a Requirement from a store row.

        Unknown columns (joined section data, for instance) are ignored.
        """
        return cls(
            id=str(row["id"]),
            section_id=str(row["section_id"]),
            user_id=str(row["user_id"]),
            verification_requirement=row.get("verification_requirement"),
            status=RequirementStatus(row.get("status") or RequirementStatus.UNANSWERED.value),
            comment=row.get("comment"),
            tool_used=row.get("tool_used"),
            source_code_reference=row.get("source_code_reference"),
            asvs_level=row.get("asvs_level"),
            section_code=row.get("section_code"),
            area=row.get("area"),
            nist=row.get("nist"),
            cwe=row.get("cwe"),
            created_at=parse_timestamp(row.get("created_at")) or utc_now(),
            updated_at=parse_timestamp(row.get("updated_at")) or utc_now(),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert requirement to dictionary for serialization."""
        return {
            "id": self.id,
            "section_id": self.section_id,
            "user_id": self.user_id,
            "verification_requirement": self.verification_requirement,
            "status": self.status.value,
            "comment": self.comment,
            "tool_used": self.tool_used,
            "source_code_reference": self.source_code_reference,
            "asvs_level": self.asvs_level,
            "section_code": self.section_code,
            "area": self.area,
            "nist": self.nist,
            "cwe": self.cwe,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
