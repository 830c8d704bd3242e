"""Persistence helpers for asvstrack."""

from asvstrack.persistence.base import RequirementStore, normalize_field_value
from asvstrack.persistence.bootstrap import create_store
from asvstrack.persistence.sql_store import SqlRequirementStore
from asvstrack.persistence.supabase_store import SupabaseRequirementStore

__all__ = [
    "RequirementStore",
    "normalize_field_value",
    "create_store",
    "SqlRequirementStore",
    "SupabaseRequirementStore",
]
