"""Workflow Engine.

Define named state machines (states + actions), start instances of them and
advance each instance one action at a time with a recorded history:
- definition validation and instance execution in `workflow_engine.engine`
- a REST API in `workflow_engine.server`
- best-effort JSON snapshot persistence
"""

__version__ = "0.1.0"

from workflow_engine.config import EngineSettings

__all__ = ["__version__", "EngineSettings"]
