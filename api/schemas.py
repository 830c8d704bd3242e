"""Pydantic schemas for API request/response models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from asvstrack.models import Requirement, RequirementTemplate, Section


# === Enums ===
class RequirementStatusEnum(str, Enum):
    VALID = "Valid"
    NON_VALID = "Non-valid"
    NOT_APPLICABLE = "Not Applicable"
    UNANSWERED = "Unanswered"


class SearchStatusEnum(str, Enum):
    OK = "ok"
    INSUFFICIENT_INPUT = "insufficient_input"


class ExportFormatEnum(str, Enum):
    PDF = "pdf"
    MARKDOWN = "markdown"
    JSON = "json"


# === Section Schemas ===
class SectionCreate(BaseModel):
    """Schema for creating a new section."""

    name: str
    slug: str
    order_index: int


class SectionResponse(BaseModel):
    """Schema for section response."""

    id: str
    name: str
    slug: str
    order_index: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_section(cls, section: Section) -> "SectionResponse":
        return cls(**section.to_dict())


# === Requirement Schemas ===
class RequirementTemplateSchema(BaseModel):
    """Schema for an admin-authored requirement template."""

    verification_requirement: str = Field(min_length=1)
    asvs_level: str | None = "L1"
    section_code: str | None = None
    area: str | None = None
    nist: str | None = None
    cwe: str | None = None

    def to_template(self) -> RequirementTemplate:
        return RequirementTemplate(**self.model_dump())


class RequirementBatch(BaseModel):
    """Schema for replacing a section's requirements."""

    requirements: list[RequirementTemplateSchema] = Field(default_factory=list)


class RequirementResponse(BaseModel):
    """Schema for requirement response."""

    id: str
    section_id: str
    verification_requirement: str | None = None
    status: RequirementStatusEnum
    comment: str | None = None
    tool_used: str | None = None
    source_code_reference: str | None = None
    asvs_level: str | None = None
    section_code: str | None = None
    area: str | None = None
    nist: str | None = None
    cwe: str | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_requirement(cls, requirement: Requirement) -> "RequirementResponse":
        data = requirement.to_dict()
        data.pop("user_id")
        return cls(**data)


class SectionRequirementsResponse(BaseModel):
    """Requirements of a section, optionally filtered."""

    section: SectionResponse
    requirements: list[RequirementResponse]
    total: int
    query: str | None = None


class FieldUpdate(BaseModel):
    """Schema for updating one requirement field."""

    field: str
    value: str | None = None


class FieldUpdateResponse(BaseModel):
    id: str
    field: str
    updated_at: datetime


# === Search Schemas ===
class SearchResultSchema(BaseModel):
    id: str
    verification_requirement: str
    section_code: str
    cwe: str
    section_id: str
    section_name: str
    section_slug: str


class SearchResponse(BaseModel):
    status: SearchStatusEnum
    query: str
    results: list[SearchResultSchema] = Field(default_factory=list)


# === Stats Schemas ===
class SectionStatSchema(BaseModel):
    section_id: str
    section_name: str
    section_slug: str
    order_index: int
    valid_count: int
    total_count: int
    validity_percentage: float
    assessed: bool
    available: bool
    band: str


class OverallStatSchema(BaseModel):
    valid_sum: int
    total_sum: int
    overall_validity_percentage: float
    asvs_level_acquired: str
    available: bool


class StatsResponse(BaseModel):
    sections: list[SectionStatSchema]
    overall: OverallStatSchema
    unavailable_sections: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    generated_at: str
    section_query: str | None = None


class DBStatusResponse(BaseModel):
    backend: str
    connected: bool
    details: dict[str, Any] = Field(default_factory=dict)
