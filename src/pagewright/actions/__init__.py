"""Event handler action chains."""

from .engine import ActionEngine, describe_error
from .handlers import (
    BUILTIN_HANDLERS,
    ActionRuntime,
    CartCollaborator,
    NavigationCollaborator,
    RecordingCollaborators,
    SessionCollaborator,
    is_same_origin,
)
from .models import ActionOutcome, ActionRunResult, ActionStepResult

__all__ = [
    "BUILTIN_HANDLERS",
    "ActionEngine",
    "ActionOutcome",
    "ActionRunResult",
    "ActionRuntime",
    "ActionStepResult",
    "CartCollaborator",
    "NavigationCollaborator",
    "RecordingCollaborators",
    "SessionCollaborator",
    "describe_error",
    "is_same_origin",
]
