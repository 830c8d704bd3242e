"""Per-session controller for requirement edits and quick search."""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from asvstrack.errors import NotFoundError, TransientIOError, ValidationError
from asvstrack.models import EDITABLE_FIELDS, Requirement, RequirementField, RequirementStatus
from asvstrack.registry import RequirementRegistry
from asvstrack.search import INSUFFICIENT_INPUT, DebouncedSearch
from asvstrack.tracing.logger import ActivityTracer, get_tracer
from config.settings import settings

logger = logging.getLogger(__name__)

COMPONENT = "session"


class SaveOutcome(str, Enum):
    """Result of a save attempt as shown by the save indicator."""

    SAVED = "saved"
    CLEAN = "clean"  # Nothing to save
    BUSY = "busy"  # Previous save of the same field still outstanding
    FAILED = "failed"  # Transient failure, field stays dirty


@dataclass
class FieldState:
    """Edit state of one field of one requirement."""

    value: Any = None
    dirty: bool = False
    saving: bool = False
    error: str | None = None
    updated_at: datetime | None = None


@dataclass
class SaveResult:
    outcome: SaveOutcome
    updated_at: datetime | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.outcome in (SaveOutcome.SAVED, SaveOutcome.CLEAN)


class SessionController:
    """Owns the per-field save state of one user session.

    State is keyed by ``(requirement_id, field)``. A field cannot be saved
    again while its previous save is outstanding, and its dirty flag is
    cleared only once a save round trip succeeds.
    """

    def __init__(
        self,
        user_id: str,
        registry: RequirementRegistry,
        search_delay: float | None = None,
        tracer: ActivityTracer | None = None,
    ):
        self.user_id = user_id
        self.registry = registry
        self.tracer = tracer or get_tracer()
        if search_delay is None:
            search_delay = settings.search_debounce_ms / 1000
        self._fields: dict[tuple[str, str], FieldState] = {}
        self.quick_search = DebouncedSearch(
            self._run_search,
            delay=search_delay,
            min_chars=registry.min_query_chars,
        )

    # ============ Field state ============

    def field_state(self, requirement_id: str, field: str) -> FieldState:
        """Get (or create) the state entry for a field."""
        if field not in EDITABLE_FIELDS:
            raise ValidationError(f"Field '{field}' cannot be edited")
        key = (requirement_id, field)
        if key not in self._fields:
            self._fields[key] = FieldState()
        return self._fields[key]

    def dirty_fields(self) -> list[tuple[str, str]]:
        """Keys of fields with unsaved changes."""
        return [key for key, state in self._fields.items() if state.dirty]

    @property
    def has_unsaved_changes(self) -> bool:
        return any(state.dirty for state in self._fields.values())

    def load(self, requirements: list[Requirement]) -> None:
        """Seed field values from freshly loaded requirements.

        Fields with unsaved edits keep their draft value.
        """
        for req in requirements:
            for field in EDITABLE_FIELDS:
                state = self.field_state(req.id, field)
                if state.dirty:
                    continue
                value = getattr(req, field)
                state.value = value.value if isinstance(value, RequirementStatus) else value
                state.updated_at = req.updated_at

    # ============ Presentation events ============

    def on_field_edit(self, requirement_id: str, field: str, value: Any) -> FieldState:
        """Record a keystroke on a text field. Saving happens on blur."""
        state = self.field_state(requirement_id, field)
        if state.value != value:
            state.value = value
            state.dirty = True
        return state

    async def on_field_blur(self, requirement_id: str, field: str) -> SaveResult:
        """Save a field when it loses focus, if it has unsaved changes."""
        state = self.field_state(requirement_id, field)
        if not state.dirty:
            return SaveResult(SaveOutcome.CLEAN, updated_at=state.updated_at)
        return await self._save(requirement_id, field, state)

    async def on_status_change(
        self, requirement_id: str, new_status: RequirementStatus | str
    ) -> SaveResult:
        """Save a status selection immediately."""
        status = new_status.value if isinstance(new_status, RequirementStatus) else new_status
        state = self.on_field_edit(requirement_id, RequirementField.STATUS.value, status)
        if not state.dirty:
            return SaveResult(SaveOutcome.CLEAN, updated_at=state.updated_at)
        return await self._save(requirement_id, RequirementField.STATUS.value, state)

    async def on_search(self, query: str) -> list[Requirement] | object:
        """Debounced quick search; returns results or ``INSUFFICIENT_INPUT``.

        Raises:
            TransientIOError: If the store could not be searched. An empty
                list always means "no matches".
        """
        try:
            return await self.quick_search.search(query)
        except TransientIOError as e:
            self.tracer.search_event(COMPONENT, query, error=str(e))
            raise

    # ============ Internals ============

    async def _save(self, requirement_id: str, field: str, state: FieldState) -> SaveResult:
        if state.saving:
            self.tracer.save_event(
                COMPONENT,
                requirement_id,
                field,
                "Previous save still outstanding",
                outcome="busy",
                level=logging.DEBUG,
            )
            return SaveResult(SaveOutcome.BUSY)

        value = state.value
        state.saving = True
        try:
            updated_at = await self.registry.set_field(requirement_id, self.user_id, field, value)
        except (ValidationError, NotFoundError) as e:
            state.error = str(e)
            self.tracer.save_event(
                COMPONENT, requirement_id, field, str(e), outcome="rejected", level=logging.WARNING
            )
            raise
        except TransientIOError as e:
            state.error = str(e)
            self.tracer.save_event(
                COMPONENT, requirement_id, field, str(e), outcome="failed", level=logging.ERROR
            )
            return SaveResult(SaveOutcome.FAILED, error=str(e))
        finally:
            state.saving = False

        # An edit made while the save was in flight stays dirty
        if state.value == value:
            state.dirty = False
        state.error = None
        state.updated_at = updated_at
        self.tracer.save_event(COMPONENT, requirement_id, field, "Requirement updated")
        return SaveResult(SaveOutcome.SAVED, updated_at=updated_at)

    async def _run_search(self, query: str) -> list[Requirement]:
        results = await self.registry.search(self.user_id, query)
        if results is INSUFFICIENT_INPUT:
            return []
        self.tracer.search_event(COMPONENT, query, result_count=len(results))
        return results
