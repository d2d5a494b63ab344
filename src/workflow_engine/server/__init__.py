"""FastAPI server adapter for the workflow engine.

Design intent:
- Keep validation and execution rules in `workflow_engine.engine`
- Keep server-specific concerns (routing, status codes, CORS) here
"""

from __future__ import annotations

__all__ = ["create_app"]

from workflow_engine.server.app import create_app
