"""FastAPI app factory.

Endpoints are intentionally thin wrappers over :class:`WorkflowEngine`.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from workflow_engine import __version__
from workflow_engine.config import EngineSettings
from workflow_engine.engine import (
    SnapshotStore,
    SnapshotWriter,
    WorkflowDefinition,
    WorkflowEngine,
    WorkflowError,
    WorkflowInstance,
)
from workflow_engine.server.models import (
    CreateWorkflowRequest,
    ErrorBody,
    ExecuteActionRequest,
)

logger = logging.getLogger(__name__)

_BAD_REQUEST = {400: {"model": ErrorBody}}
# Unknown ids get an empty 404 body.
_NOT_FOUND = {404: {"description": "Not found"}}


def build_engine(settings: EngineSettings) -> WorkflowEngine:
    """Load the snapshot (if enabled) and wire up the background writer."""

    if not settings.persistence_enabled:
        return WorkflowEngine()
    store = SnapshotStore(settings.data_file)
    return WorkflowEngine(writer=SnapshotWriter(store), data=store.load())


def create_app(
    settings: EngineSettings | None = None, engine: WorkflowEngine | None = None
) -> FastAPI:
    settings = settings or EngineSettings()
    engine = engine or build_engine(settings)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        yield
        engine.close()

    app = FastAPI(
        title="Workflow Engine",
        version=__version__,
        description="REST API for defining state machines and driving their instances.",
        openapi_url="/api/openapi.json",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.engine = engine

    origins = settings.parsed_cors_origins()
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.exception_handler(WorkflowError)
    async def workflow_error_handler(_request: Request, exc: WorkflowError) -> JSONResponse:
        return JSONResponse(status_code=400, content=exc.to_json())

    @app.get("/api/health")
    def health() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    @app.post(
        "/api/workflows",
        status_code=201,
        response_model=WorkflowDefinition,
        responses=_BAD_REQUEST,
    )
    def create_workflow(req: CreateWorkflowRequest, response: Response) -> WorkflowDefinition:
        definition = engine.create_definition(req.name, req.states, req.actions)
        response.headers["Location"] = f"/api/workflows/{definition.id}"
        return definition

    @app.get("/api/workflows", response_model=list[WorkflowDefinition])
    def list_workflows() -> list[WorkflowDefinition]:
        return engine.list_definitions()

    @app.get(
        "/api/workflows/{definition_id}",
        response_model=WorkflowDefinition,
        responses=_NOT_FOUND,
    )
    def get_workflow(definition_id: str) -> WorkflowDefinition | Response:
        definition = engine.get_definition(definition_id)
        if definition is None:
            return Response(status_code=404)
        return definition

    @app.post(
        "/api/workflows/{definition_id}/instances",
        status_code=201,
        response_model=WorkflowInstance,
        responses=_BAD_REQUEST,
    )
    def start_instance(definition_id: str, response: Response) -> WorkflowInstance:
        instance = engine.start_instance(definition_id)
        response.headers["Location"] = f"/api/instances/{instance.id}"
        return instance

    @app.get("/api/instances", response_model=list[WorkflowInstance])
    def list_instances() -> list[WorkflowInstance]:
        return engine.list_instances()

    @app.get(
        "/api/instances/{instance_id}",
        response_model=WorkflowInstance,
        responses=_NOT_FOUND,
    )
    def get_instance(instance_id: str) -> WorkflowInstance | Response:
        instance = engine.get_instance(instance_id)
        if instance is None:
            return Response(status_code=404)
        return instance

    @app.post(
        "/api/instances/{instance_id}/execute",
        response_model=WorkflowInstance,
        responses=_BAD_REQUEST,
    )
    def execute_action(instance_id: str, req: ExecuteActionRequest) -> WorkflowInstance:
        return engine.execute_action(instance_id, req.action_id)

    return app
