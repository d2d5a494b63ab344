"""Workflow definition validation and instance execution.

The engine is pure in-memory logic. Persistence is a best-effort collaborator
(:mod:`workflow_engine.engine.snapshot`) and HTTP exposure lives in
:mod:`workflow_engine.server`.
"""

from __future__ import annotations

from .errors import (
    ActionDisabled,
    ActionNotFound,
    CurrentStateNotFound,
    DefinitionNotFound,
    DefinitionValidationError,
    InstanceIsFinal,
    InstanceNotFound,
    InvalidTransition,
    NotFoundError,
    TargetStateNotFound,
    WorkflowError,
)
from .executor import WorkflowEngine
from .models import (
    Action,
    HistoryEntry,
    State,
    WorkflowData,
    WorkflowDefinition,
    WorkflowInstance,
)
from .snapshot import SnapshotStore, SnapshotWriter
from .validator import validate_definition

__all__ = [
    "Action",
    "ActionDisabled",
    "ActionNotFound",
    "CurrentStateNotFound",
    "DefinitionNotFound",
    "DefinitionValidationError",
    "HistoryEntry",
    "InstanceIsFinal",
    "InstanceNotFound",
    "InvalidTransition",
    "NotFoundError",
    "SnapshotStore",
    "SnapshotWriter",
    "State",
    "TargetStateNotFound",
    "WorkflowData",
    "WorkflowDefinition",
    "WorkflowEngine",
    "WorkflowError",
    "WorkflowInstance",
    "validate_definition",
]
