"""Structural validation of proposed workflow definitions.

Checks run in a fixed order and the first failure wins. Only the proposed
state and action ids are consulted; previously stored definitions play no part.

Deliberately absent: reachability from the initial state, cycle detection, and
any rule about actions leaving final states. The executor is what refuses to
fire actions from a final state.
"""

from __future__ import annotations

from collections.abc import Sequence

from .errors import DefinitionValidationError
from .models import Action, State, WorkflowDefinition, new_id, utc_now


def _duplicates(ids: Sequence[str]) -> list[str]:
    seen: set[str] = set()
    dupes: list[str] = []
    for value in ids:
        if value in seen and value not in dupes:
            dupes.append(value)
        seen.add(value)
    return dupes


def check_structure(
    name: str | None,
    states: Sequence[State] | None,
    actions: Sequence[Action] | None,
) -> None:
    """Run the ordered structural checks without building a definition.

    Raises:
        DefinitionValidationError: with ``code`` naming the violated rule.
    """

    if name is None or not name.strip():
        raise DefinitionValidationError("Workflow name cannot be empty", code="empty_name")

    if not states:
        raise DefinitionValidationError(
            "Workflow must have at least one state", code="no_states"
        )

    if actions is None:
        raise DefinitionValidationError(
            "Workflow must have actions defined", code="missing_actions"
        )

    state_ids = [s.id for s in states]
    dupes = _duplicates(state_ids)
    if dupes:
        raise DefinitionValidationError(
            f"Duplicate state IDs found: {', '.join(dupes)}", code="duplicate_state_ids"
        )

    dupes = _duplicates([a.id for a in actions])
    if dupes:
        raise DefinitionValidationError(
            f"Duplicate action IDs found: {', '.join(dupes)}", code="duplicate_action_ids"
        )

    initial_count = sum(1 for s in states if s.is_initial)
    if initial_count != 1:
        raise DefinitionValidationError(
            f"Workflow must have exactly one initial state (found {initial_count})",
            code="initial_state_count",
        )

    known = set(state_ids)
    for action in actions:
        unknown = [s for s in action.from_states if s not in known]
        if unknown:
            raise DefinitionValidationError(
                f"Action '{action.id}' references unknown from-state(s): {', '.join(unknown)}",
                code="unknown_from_state",
            )
        if action.to_state not in known:
            raise DefinitionValidationError(
                f"Action '{action.id}' references unknown to-state '{action.to_state}'",
                code="unknown_to_state",
            )


def validate_definition(
    name: str | None,
    states: Sequence[State] | None,
    actions: Sequence[Action] | None,
) -> WorkflowDefinition:
    """Validate a candidate definition and return an immutable snapshot of it.

    Raises:
        DefinitionValidationError: see :func:`check_structure`.
    """

    check_structure(name, states, actions)
    assert name is not None and states is not None and actions is not None
    return WorkflowDefinition(
        id=new_id(),
        name=name,
        states=[s.model_copy(deep=True) for s in states],
        actions=[a.model_copy(deep=True) for a in actions],
        created_at=utc_now(),
    )
