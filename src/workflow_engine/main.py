"""CLI entrypoint for the workflow engine.

Commands:
- `serve`: run the REST API with uvicorn
- `validate`: check a workflow definition JSON file without starting a server
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from workflow_engine import __version__
from workflow_engine.config import EngineSettings
from workflow_engine.engine import DefinitionValidationError, validate_definition
from workflow_engine.logging import configure_logging
from workflow_engine.server.models import CreateWorkflowRequest

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="workflow-engine",
        description="State machine workflow engine with a REST API",
    )
    parser.add_argument("--version", action="version", version=f"workflow-engine {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the REST API server")
    serve.add_argument("--host", default=None, help="Bind address (default: WORKFLOW_HOST)")
    serve.add_argument(
        "--port", type=int, default=None, help="Bind port (default: WORKFLOW_PORT)"
    )

    validate = subparsers.add_parser(
        "validate", help="Validate a workflow definition JSON file"
    )
    validate.add_argument(
        "file",
        type=Path,
        help="JSON file with 'name', 'states' and 'actions' (camelCase fields)",
    )

    return parser


def _validate_file(path: Path) -> int:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        req = CreateWorkflowRequest.model_validate(raw)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        print(f"Cannot read definition from {path}: {e}", file=sys.stderr)
        return 2

    try:
        definition = validate_definition(req.name, req.states, req.actions)
    except DefinitionValidationError as e:
        print(f"Invalid definition ({e.code}): {e.message}", file=sys.stderr)
        return 3

    print(
        f"Definition '{definition.name}' is valid: "
        f"{len(definition.states)} states, {len(definition.actions)} actions, "
        f"initial state '{definition.initial_state().id}'"
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = EngineSettings()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    configure_logging(settings.log_level)

    if args.command == "validate":
        return _validate_file(args.file)

    if args.command == "serve":
        import uvicorn

        from workflow_engine.server.app import create_app

        host = args.host or settings.host
        port = args.port or settings.port
        logger.info(
            "Starting server",
            extra={"host": host, "port": port, "data_file": str(settings.data_file)},
        )
        uvicorn.run(create_app(settings), host=host, port=port, log_config=None)
        return 0

    logger.error("Unknown command", extra={"command": args.command})
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
