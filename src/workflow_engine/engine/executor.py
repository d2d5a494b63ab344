"""In-memory workflow engine: definition/instance stores and action execution.

Concurrency model:
- each store is a plain dict guarded by its own lock
- each instance has its own lock; an action runs entirely under it and the
  next instance value replaces the stored one in a single assignment, so
  readers never observe a half-applied transition
- executions against different instances never wait on each other beyond the
  brief dict access
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence

from .errors import (
    ActionDisabled,
    ActionNotFound,
    CurrentStateNotFound,
    DefinitionNotFound,
    InstanceIsFinal,
    InstanceNotFound,
    InvalidTransition,
    TargetStateNotFound,
    WorkflowError,
)
from .models import (
    START_ACTION_ID,
    START_ACTION_NAME,
    Action,
    HistoryEntry,
    State,
    WorkflowData,
    WorkflowDefinition,
    WorkflowInstance,
    new_id,
    utc_now,
)
from .snapshot import SnapshotWriter
from .validator import validate_definition

logger = logging.getLogger(__name__)


class WorkflowEngine:
    """Owns the definition and instance stores for the life of the process."""

    def __init__(
        self,
        *,
        writer: SnapshotWriter | None = None,
        data: WorkflowData | None = None,
    ) -> None:
        self._writer = writer
        self._definitions: dict[str, WorkflowDefinition] = {}
        self._instances: dict[str, WorkflowInstance] = {}
        self._instance_locks: dict[str, threading.Lock] = {}
        self._definitions_lock = threading.Lock()
        self._instances_lock = threading.Lock()
        # Serialises snapshot capture + submit so the last write queued is
        # always the most recent state.
        self._persist_lock = threading.Lock()

        if data is not None:
            for definition in data.definitions:
                self._definitions[definition.id] = definition
            for instance in data.instances:
                self._instances[instance.id] = instance
                self._instance_locks[instance.id] = threading.Lock()
            logger.info(
                "Loaded workflow data",
                extra={
                    "definitions": len(self._definitions),
                    "instances": len(self._instances),
                },
            )

    # Definitions

    def create_definition(
        self,
        name: str | None,
        states: Sequence[State] | None,
        actions: Sequence[Action] | None,
    ) -> WorkflowDefinition:
        try:
            definition = validate_definition(name, states, actions)
        except WorkflowError as e:
            logger.info("Definition rejected", extra={"code": e.code, "reason": e.message})
            raise

        with self._definitions_lock:
            self._definitions[definition.id] = definition
        logger.info(
            "Definition created",
            extra={"definition_id": definition.id, "definition_name": definition.name},
        )
        self._persist()
        return definition.model_copy(deep=True)

    def get_definition(self, definition_id: str) -> WorkflowDefinition | None:
        definition = self._lookup_definition(definition_id)
        return definition.model_copy(deep=True) if definition is not None else None

    def list_definitions(self) -> list[WorkflowDefinition]:
        with self._definitions_lock:
            definitions = list(self._definitions.values())
        return [d.model_copy(deep=True) for d in definitions]

    def _lookup_definition(self, definition_id: str) -> WorkflowDefinition | None:
        with self._definitions_lock:
            return self._definitions.get(definition_id)

    # Instances

    def start_instance(self, definition_id: str) -> WorkflowInstance:
        definition = self._lookup_definition(definition_id)
        if definition is None:
            logger.info(
                "Start rejected",
                extra={"definition_id": definition_id, "code": DefinitionNotFound.code},
            )
            raise DefinitionNotFound(f"Workflow definition with id '{definition_id}' not found")

        initial = definition.initial_state()
        now = utc_now()
        instance = WorkflowInstance(
            id=new_id(),
            definition_id=definition.id,
            current_state_id=initial.id,
            history=[
                HistoryEntry(
                    action_id=START_ACTION_ID,
                    action_name=START_ACTION_NAME,
                    from_state_id="",
                    to_state_id=initial.id,
                    timestamp=now,
                )
            ],
            created_at=now,
            last_modified=now,
        )

        with self._instances_lock:
            self._instances[instance.id] = instance
            self._instance_locks[instance.id] = threading.Lock()
        logger.info(
            "Instance started",
            extra={
                "instance_id": instance.id,
                "definition_id": definition.id,
                "state": initial.id,
            },
        )
        self._persist()
        return instance.model_copy(deep=True)

    def get_instance(self, instance_id: str) -> WorkflowInstance | None:
        with self._instances_lock:
            instance = self._instances.get(instance_id)
        return instance.model_copy(deep=True) if instance is not None else None

    def list_instances(self) -> list[WorkflowInstance]:
        with self._instances_lock:
            instances = list(self._instances.values())
        return [i.model_copy(deep=True) for i in instances]

    def execute_action(self, instance_id: str, action_id: str) -> WorkflowInstance:
        """Fire ``action_id`` on an instance.

        Either the state change and the history append both happen, or
        neither does.

        Raises:
            WorkflowError: one subclass per failed check, in pipeline order.
        """

        with self._instances_lock:
            lock = self._instance_locks.get(instance_id)
        if lock is None:
            logger.info(
                "Action rejected",
                extra={"instance_id": instance_id, "code": InstanceNotFound.code},
            )
            raise InstanceNotFound(f"Workflow instance with id '{instance_id}' not found")

        with lock:
            try:
                updated = self._transition(instance_id, action_id)
            except WorkflowError as e:
                logger.info(
                    "Action rejected",
                    extra={"instance_id": instance_id, "action_id": action_id, "code": e.code},
                )
                raise
            with self._instances_lock:
                self._instances[instance_id] = updated

        last = updated.history[-1]
        logger.info(
            "Action executed",
            extra={
                "instance_id": instance_id,
                "action_id": action_id,
                "from_state": last.from_state_id,
                "to_state": last.to_state_id,
            },
        )
        self._persist()
        return updated.model_copy(deep=True)

    def _transition(self, instance_id: str, action_id: str) -> WorkflowInstance:
        with self._instances_lock:
            instance = self._instances.get(instance_id)
        if instance is None:
            raise InstanceNotFound(f"Workflow instance with id '{instance_id}' not found")

        definition = self._lookup_definition(instance.definition_id)
        if definition is None:
            raise DefinitionNotFound("Workflow definition not found for instance")

        action = definition.find_action(action_id)
        if action is None:
            raise ActionNotFound(f"Action with id '{action_id}' not found in workflow definition")

        if not action.enabled:
            raise ActionDisabled(f"Action '{action_id}' is disabled")

        current = definition.find_state(instance.current_state_id)
        if current is None:
            raise CurrentStateNotFound(
                f"Current state '{instance.current_state_id}' not found in definition"
            )

        # Final states are terminal regardless of what from_states declares.
        if current.is_final:
            raise InstanceIsFinal(f"Cannot execute actions on final state '{current.id}'")

        if current.id not in action.from_states:
            raise InvalidTransition(
                f"Action '{action_id}' cannot be executed from current state '{current.id}'"
            )

        if definition.find_state(action.to_state) is None:
            raise TargetStateNotFound(f"Target state '{action.to_state}' not found in definition")

        now = utc_now()
        entry = HistoryEntry(
            action_id=action.id,
            action_name=action.name,
            from_state_id=current.id,
            to_state_id=action.to_state,
            timestamp=now,
        )
        return instance.model_copy(
            update={
                "current_state_id": action.to_state,
                "history": [*instance.history, entry],
                "last_modified": now,
            }
        )

    # Persistence

    def snapshot(self) -> WorkflowData:
        """Deep copy of both stores, safe to hand to callers."""

        return self._capture().model_copy(deep=True)

    def _capture(self) -> WorkflowData:
        # Stored values are replaced, never mutated, so sharing them is safe.
        with self._definitions_lock:
            definitions = list(self._definitions.values())
        with self._instances_lock:
            instances = list(self._instances.values())
        return WorkflowData(definitions=definitions, instances=instances)

    def _persist(self) -> None:
        if self._writer is None:
            return
        with self._persist_lock:
            self._writer.submit(self._capture())

    def flush(self) -> None:
        """Wait for queued snapshot writes; a no-op without a writer."""

        if self._writer is not None:
            self._writer.flush()

    def close(self) -> None:
        if self._writer is not None:
            self._writer.close()
