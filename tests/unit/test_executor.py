"""Unit tests for starting instances and executing actions."""

from __future__ import annotations

import threading

import pytest

from workflow_engine.engine import (
    Action,
    ActionDisabled,
    ActionNotFound,
    CurrentStateNotFound,
    DefinitionNotFound,
    InstanceIsFinal,
    InstanceNotFound,
    InvalidTransition,
    State,
    TargetStateNotFound,
    WorkflowData,
    WorkflowDefinition,
    WorkflowEngine,
    WorkflowError,
    WorkflowInstance,
)


def test_start_seeds_initial_state_and_history(
    engine: WorkflowEngine, review_definition: WorkflowDefinition
) -> None:
    instance = engine.start_instance(review_definition.id)

    assert instance.definition_id == review_definition.id
    assert instance.current_state_id == "draft"
    assert len(instance.history) == 1
    start = instance.history[0]
    assert start.action_id == "START"
    assert start.action_name == "Start Workflow"
    assert start.from_state_id == ""
    assert start.to_state_id == "draft"
    assert engine.get_instance(instance.id) == instance


def test_start_unknown_definition(engine: WorkflowEngine) -> None:
    with pytest.raises(DefinitionNotFound):
        engine.start_instance("missing")
    assert engine.list_instances() == []


def test_review_scenario(engine: WorkflowEngine, review_definition: WorkflowDefinition) -> None:
    instance = engine.start_instance(review_definition.id)

    instance = engine.execute_action(instance.id, "submit")
    assert instance.current_state_id == "review"
    assert len(instance.history) == 2
    assert instance.history[-1].from_state_id == "draft"
    assert instance.history[-1].to_state_id == "review"
    assert instance.history[-1].action_name == "Submit"

    instance = engine.execute_action(instance.id, "approve")
    assert instance.current_state_id == "approved"
    assert len(instance.history) == 3

    with pytest.raises(InstanceIsFinal):
        engine.execute_action(instance.id, "approve")

    stored = engine.get_instance(instance.id)
    assert stored is not None
    assert stored.current_state_id == "approved"
    assert len(stored.history) == 3


def test_successful_execute_updates_last_modified(
    engine: WorkflowEngine, review_definition: WorkflowDefinition
) -> None:
    started = engine.start_instance(review_definition.id)
    updated = engine.execute_action(started.id, "submit")
    assert updated.last_modified >= started.last_modified
    assert updated.last_modified == updated.history[-1].timestamp
    assert updated.created_at == started.created_at


def test_unknown_instance(engine: WorkflowEngine) -> None:
    with pytest.raises(InstanceNotFound):
        engine.execute_action("missing", "submit")


def test_unknown_action(engine: WorkflowEngine, review_definition: WorkflowDefinition) -> None:
    instance = engine.start_instance(review_definition.id)
    with pytest.raises(ActionNotFound):
        engine.execute_action(instance.id, "publish")


def test_disabled_action() -> None:
    engine = WorkflowEngine()
    definition = engine.create_definition(
        "Flow",
        [State(id="a", name="A", is_initial=True), State(id="b", name="B")],
        [Action(id="go", name="Go", from_states=["a"], to_state="b", enabled=False)],
    )
    instance = engine.start_instance(definition.id)
    with pytest.raises(ActionDisabled):
        engine.execute_action(instance.id, "go")


def test_invalid_transition_leaves_instance_untouched(
    engine: WorkflowEngine, review_definition: WorkflowDefinition
) -> None:
    instance = engine.start_instance(review_definition.id)

    with pytest.raises(InvalidTransition):
        engine.execute_action(instance.id, "approve")

    stored = engine.get_instance(instance.id)
    assert stored is not None
    assert stored.current_state_id == "draft"
    assert len(stored.history) == 1
    assert stored.last_modified == instance.last_modified


def test_final_state_blocks_even_declared_transitions() -> None:
    engine = WorkflowEngine()
    definition = engine.create_definition(
        "Reopenable",
        [
            State(id="open", name="Open", is_initial=True),
            State(id="closed", name="Closed", is_final=True),
        ],
        [
            Action(id="close", name="Close", from_states=["open"], to_state="closed"),
            Action(id="reopen", name="Reopen", from_states=["closed"], to_state="open"),
        ],
    )
    instance = engine.start_instance(definition.id)
    engine.execute_action(instance.id, "close")

    for action_id in ("reopen", "close"):
        with pytest.raises(InstanceIsFinal):
            engine.execute_action(instance.id, action_id)


def test_final_check_precedes_transition_check() -> None:
    engine = WorkflowEngine()
    definition = engine.create_definition(
        "Single",
        [State(id="only", name="Only", is_initial=True, is_final=True)],
        [Action(id="noop", name="Noop", from_states=[], to_state="only")],
    )
    instance = engine.start_instance(definition.id)
    with pytest.raises(InstanceIsFinal):
        engine.execute_action(instance.id, "noop")


def test_disabled_states_do_not_block_transitions() -> None:
    engine = WorkflowEngine()
    definition = engine.create_definition(
        "Disabled states",
        [
            State(id="a", name="A", is_initial=True, enabled=False),
            State(id="b", name="B", enabled=False),
        ],
        [Action(id="go", name="Go", from_states=["a"], to_state="b")],
    )
    instance = engine.start_instance(definition.id)
    assert engine.execute_action(instance.id, "go").current_state_id == "b"


def _orphaned(definition: WorkflowDefinition, current_state_id: str) -> WorkflowInstance:
    return WorkflowInstance(
        id="orphan",
        definition_id=definition.id,
        current_state_id=current_state_id,
    )


def test_missing_definition_for_instance() -> None:
    instance = WorkflowInstance(id="orphan", definition_id="gone", current_state_id="a")
    engine = WorkflowEngine(data=WorkflowData(instances=[instance]))
    with pytest.raises(DefinitionNotFound):
        engine.execute_action("orphan", "go")


def test_current_state_missing_from_definition() -> None:
    definition = WorkflowDefinition(
        id="def-1",
        name="Flow",
        states=[State(id="a", name="A", is_initial=True)],
        actions=[Action(id="go", name="Go", from_states=["a"], to_state="a")],
    )
    engine = WorkflowEngine(
        data=WorkflowData(definitions=[definition], instances=[_orphaned(definition, "zzz")])
    )
    with pytest.raises(CurrentStateNotFound):
        engine.execute_action("orphan", "go")


def test_target_state_missing_from_definition() -> None:
    # Only reachable through data that bypassed validation.
    definition = WorkflowDefinition(
        id="def-1",
        name="Flow",
        states=[State(id="a", name="A", is_initial=True)],
        actions=[Action(id="go", name="Go", from_states=["a"], to_state="ghost")],
    )
    engine = WorkflowEngine(
        data=WorkflowData(definitions=[definition], instances=[_orphaned(definition, "a")])
    )
    with pytest.raises(TargetStateNotFound):
        engine.execute_action("orphan", "go")
    stored = engine.get_instance("orphan")
    assert stored is not None
    assert stored.current_state_id == "a"
    assert stored.history == []


def test_error_codes_are_distinct(
    engine: WorkflowEngine, review_definition: WorkflowDefinition
) -> None:
    instance = engine.start_instance(review_definition.id)
    codes = set()
    for instance_id, action_id in [
        ("missing", "submit"),
        (instance.id, "publish"),
        (instance.id, "approve"),
    ]:
        with pytest.raises(WorkflowError) as exc:
            engine.execute_action(instance_id, action_id)
        codes.add(exc.value.code)
    assert codes == {"instance_not_found", "action_not_found", "invalid_transition"}


def test_returned_objects_are_copies(
    engine: WorkflowEngine, review_definition: WorkflowDefinition
) -> None:
    instance = engine.start_instance(review_definition.id)
    instance.current_state_id = "approved"
    instance.history.clear()

    stored = engine.get_instance(instance.id)
    assert stored is not None
    assert stored.current_state_id == "draft"
    assert len(stored.history) == 1

    fetched = engine.get_definition(review_definition.id)
    assert fetched is not None
    fetched.states.clear()
    again = engine.get_definition(review_definition.id)
    assert again is not None
    assert len(again.states) == 3


def test_list_operations(engine: WorkflowEngine, review_definition: WorkflowDefinition) -> None:
    a = engine.start_instance(review_definition.id)
    b = engine.start_instance(review_definition.id)

    assert [d.id for d in engine.list_definitions()] == [review_definition.id]
    assert {i.id for i in engine.list_instances()} == {a.id, b.id}
    assert engine.get_definition("missing") is None
    assert engine.get_instance("missing") is None


def test_concurrent_executions_on_one_instance_apply_exactly_once() -> None:
    engine = WorkflowEngine()
    definition = engine.create_definition(
        "Once",
        [
            State(id="todo", name="To do", is_initial=True),
            State(id="done", name="Done"),
        ],
        [Action(id="finish", name="Finish", from_states=["todo"], to_state="done")],
    )
    instance = engine.start_instance(definition.id)

    successes: list[str] = []
    failures: list[str] = []
    barrier = threading.Barrier(8)

    def worker() -> None:
        barrier.wait()
        try:
            engine.execute_action(instance.id, "finish")
            successes.append("ok")
        except InvalidTransition as e:
            failures.append(e.code)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(successes) == 1
    assert failures == ["invalid_transition"] * 7
    stored = engine.get_instance(instance.id)
    assert stored is not None
    assert len(stored.history) == 2


def test_concurrent_executions_on_separate_instances() -> None:
    engine = WorkflowEngine()
    definition = engine.create_definition(
        "Ping-pong",
        [State(id="ping", name="Ping", is_initial=True), State(id="pong", name="Pong")],
        [
            Action(id="hit", name="Hit", from_states=["ping"], to_state="pong"),
            Action(id="back", name="Back", from_states=["pong"], to_state="ping"),
        ],
    )
    instances = [engine.start_instance(definition.id) for _ in range(4)]

    def drive(instance_id: str) -> None:
        for _ in range(25):
            engine.execute_action(instance_id, "hit")
            engine.execute_action(instance_id, "back")

    threads = [threading.Thread(target=drive, args=(i.id,)) for i in instances]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    for instance in engine.list_instances():
        assert instance.current_state_id == "ping"
        assert len(instance.history) == 51
