"""Registries for sections and requirements."""

from asvstrack.registry.requirement_registry import (
    RequirementRegistry,
    load_templates_from_yaml,
)

__all__ = [
    "RequirementRegistry",
    "load_templates_from_yaml",
]
