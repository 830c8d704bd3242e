"""Session state for requirement editing."""

from asvstrack.session.controller import (
    FieldState,
    SaveOutcome,
    SaveResult,
    SessionController,
)

__all__ = [
    "FieldState",
    "SaveOutcome",
    "SaveResult",
    "SessionController",
]
