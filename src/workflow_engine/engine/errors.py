"""Error taxonomy for the workflow engine.

Every failure carries a machine-readable ``code`` and a human-readable message.
None of them are retryable. The REST layer maps them to 400 responses, except
plain lookups (``get_*`` returning ``None``) which become 404.
"""

from __future__ import annotations


class WorkflowError(ValueError):
    """Base class for invalid input / invalid operation failures."""

    code: str = "workflow_error"

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_json(self) -> dict[str, str]:
        return {"error": self.message, "code": self.code}


class DefinitionValidationError(WorkflowError):
    """A proposed definition is structurally invalid.

    ``code`` identifies which rule failed.
    """

    code = "invalid_definition"


class NotFoundError(WorkflowError):
    code = "not_found"


class DefinitionNotFound(NotFoundError):
    code = "definition_not_found"


class InstanceNotFound(NotFoundError):
    code = "instance_not_found"


class ActionNotFound(WorkflowError):
    code = "action_not_found"


class ActionDisabled(WorkflowError):
    code = "action_disabled"


class CurrentStateNotFound(WorkflowError):
    code = "current_state_not_found"


class InstanceIsFinal(WorkflowError):
    code = "instance_is_final"


class InvalidTransition(WorkflowError):
    code = "invalid_transition"


class TargetStateNotFound(WorkflowError):
    code = "target_state_not_found"
