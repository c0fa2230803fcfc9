"""Configuration for the REST server and operator panel.

The server starts without any tokens configured; the pipelines report missing
credentials in their run log at request time.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from demo_controls.orchestrator.config import DemoSettings


class ServerSettings(DemoSettings):
    """Settings for the REST API + panel hosting."""

    jobs_state_file: Path = Field(
        default=Path("state/demo_jobs.json"),
        validation_alias="DEMO_JOBS_STATE_FILE",
        description="Where background job records are persisted (best-effort)",
    )

    cors_origins: str = Field(
        default="http://localhost:3000,http://127.0.0.1:3000",
        validation_alias="DEMO_CORS_ORIGINS",
        description="Comma-separated list of allowed CORS origins.",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
        env_ignore_empty=True,
        populate_by_name=True,
    )

    def parsed_cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]
