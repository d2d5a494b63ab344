"""Configuration for the workflow engine service.

Configuration is loaded from:
- environment variables
- and a local `.env` file (if present)
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Settings for the engine, its snapshot file and the REST server.

    Environment variables:
    - WORKFLOW_DATA_FILE            (optional)
    - WORKFLOW_PERSISTENCE_ENABLED  (optional)
    - LOG_LEVEL                     (optional)
    - WORKFLOW_HOST / WORKFLOW_PORT (optional)
    - WORKFLOW_CORS_ORIGINS         (optional)

    Notes:
        Tests can override the env file via `EngineSettings(_env_file=path)`.
    """

    data_file: Path = Field(
        default=Path("workflow_data.json"),
        validation_alias="WORKFLOW_DATA_FILE",
        description="JSON file holding the definitions/instances snapshot",
    )
    persistence_enabled: bool = Field(
        default=True,
        validation_alias="WORKFLOW_PERSISTENCE_ENABLED",
        description="If false, nothing is loaded from or written to the data file",
    )

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )

    host: str = Field(default="127.0.0.1", validation_alias="WORKFLOW_HOST")
    port: int = Field(default=8080, validation_alias="WORKFLOW_PORT", ge=1, le=65535)

    cors_origins: str = Field(
        default="",
        validation_alias="WORKFLOW_CORS_ORIGINS",
        description="Comma-separated list of allowed CORS origins (empty disables CORS).",
    )

    model_config = SettingsConfigDict(env_prefix="", env_file=".env", extra="ignore")

    def parsed_cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]
