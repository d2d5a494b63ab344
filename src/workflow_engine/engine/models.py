"""Workflow data model.

Attributes are snake_case in Python; the wire and storage representation is
lower-camel-case. Always dump with ``by_alias=True``.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

START_ACTION_ID = "START"
START_ACTION_NAME = "Start Workflow"


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


def new_id() -> str:
    return str(uuid.uuid4())


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class State(_CamelModel):
    id: str
    name: str
    is_initial: bool = False
    is_final: bool = False
    # Stored and returned, but never consulted when executing actions.
    enabled: bool = True
    description: str | None = None


class Action(_CamelModel):
    """A transition rule: fires from any of ``from_states`` into ``to_state``."""

    id: str
    name: str
    from_states: list[str] = Field(default_factory=list)
    to_state: str
    enabled: bool = True


class WorkflowDefinition(_CamelModel):
    """An immutable, validated state machine description.

    Only :func:`workflow_engine.engine.validator.validate_definition` creates
    these (or the snapshot loader, for previously validated data).
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    name: str
    states: list[State]
    actions: list[Action]
    created_at: datetime = Field(default_factory=utc_now)

    def initial_state(self) -> State:
        for state in self.states:
            if state.is_initial:
                return state
        # Unreachable for validated definitions.
        raise LookupError(f"Definition '{self.id}' has no initial state")

    def find_state(self, state_id: str) -> State | None:
        for state in self.states:
            if state.id == state_id:
                return state
        return None

    def find_action(self, action_id: str) -> Action | None:
        for action in self.actions:
            if action.id == action_id:
                return action
        return None


class HistoryEntry(_CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    action_id: str
    action_name: str
    from_state_id: str
    to_state_id: str
    timestamp: datetime = Field(default_factory=utc_now)


class WorkflowInstance(_CamelModel):
    """One running execution of a definition.

    ``definition_id`` is a reference; the definition is resolved on every call.
    """

    id: str
    definition_id: str
    current_state_id: str
    history: list[HistoryEntry] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    last_modified: datetime = Field(default_factory=utc_now)


class WorkflowData(_CamelModel):
    """Snapshot document holding every definition and instance."""

    definitions: list[WorkflowDefinition] = Field(default_factory=list)
    instances: list[WorkflowInstance] = Field(default_factory=list)
