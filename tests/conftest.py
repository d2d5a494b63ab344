"""Test configuration and fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from workflow_engine.engine import (
    Action,
    SnapshotStore,
    SnapshotWriter,
    State,
    WorkflowDefinition,
    WorkflowEngine,
)


@pytest.fixture
def review_states() -> list[State]:
    """draft (initial) -> review -> approved (final)."""
    return [
        State(id="draft", name="Draft", is_initial=True),
        State(id="review", name="In Review"),
        State(id="approved", name="Approved", is_final=True),
    ]


@pytest.fixture
def review_actions() -> list[Action]:
    return [
        Action(id="submit", name="Submit", from_states=["draft"], to_state="review"),
        Action(id="approve", name="Approve", from_states=["review"], to_state="approved"),
    ]


@pytest.fixture
def engine() -> WorkflowEngine:
    """An engine with no persistence."""
    return WorkflowEngine()


@pytest.fixture
def review_definition(
    engine: WorkflowEngine, review_states: list[State], review_actions: list[Action]
) -> WorkflowDefinition:
    return engine.create_definition("Document Review", review_states, review_actions)


@pytest.fixture
def data_file(tmp_path: Path) -> Path:
    return tmp_path / "state" / "workflow_data.json"


@pytest.fixture
def persisted_engine(data_file: Path):
    """An engine writing snapshots to a temporary file."""
    writer = SnapshotWriter(SnapshotStore(data_file))
    eng = WorkflowEngine(writer=writer)
    yield eng
    eng.close()
