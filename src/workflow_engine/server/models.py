"""Pydantic request models for the REST server.

Response bodies are the engine models themselves, serialised with camelCase
aliases.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from workflow_engine.engine.models import Action, State


class _CamelRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateWorkflowRequest(_CamelRequest):
    # Missing or empty values are left for the validator so the client gets
    # its specific reason instead of a generic 422.
    name: str | None = None
    states: list[State] | None = None
    actions: list[Action] | None = None


class ExecuteActionRequest(_CamelRequest):
    action_id: str


class ErrorBody(BaseModel):
    error: str
    code: str
