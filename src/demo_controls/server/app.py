"""FastAPI app factory.

Endpoints are thin wrappers over :class:`DemoService`; every run returns HTTP 200
with a ``success`` flag so the panel can always show the transcript.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import cast

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse

from demo_controls import __version__
from demo_controls.orchestrator.demo_service import DemoService
from demo_controls.orchestrator.run_log import DemoRunResult
from demo_controls.server.config import ServerSettings
from demo_controls.server.demo_runner import start_demo_job
from demo_controls.server.job_store import JobRecord, JobStore
from demo_controls.server.models import (
    DemoAction,
    DemoJob,
    DemoJobRequest,
    DemoRequest,
    DemoResponse,
    UsersResponse,
)

logger = logging.getLogger(__name__)

PANEL_PATH = Path(__file__).parent / "static" / "panel.html"


def _iso_to_dt(value: str) -> datetime:
    # Best-effort parsing; the store always writes ISO format.
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return datetime.now(tz=UTC)


def _to_response(result: DemoRunResult) -> DemoResponse:
    return DemoResponse(
        success=result.success,
        output=result.output,
        error=result.error,
        prUrl=result.pr_url,
        prNumber=result.pr_number,
    )


def _to_api_job(record: JobRecord) -> DemoJob:
    return DemoJob(
        job_id=record.job_id,
        action=cast(DemoAction, record.action),
        user_name=record.user_name,
        status=record.status,
        created_at=_iso_to_dt(record.created_at),
        updated_at=_iso_to_dt(record.updated_at),
        success=record.success,
        output=record.output,
        error=record.error,
        pr_url=record.pr_url,
        pr_number=record.pr_number,
    )


def create_app(
    settings: ServerSettings | None = None,
    *,
    service: DemoService | None = None,
) -> FastAPI:
    settings = settings or ServerSettings()
    service = service or DemoService(settings)
    job_store = JobStore(settings.jobs_state_file)

    app = FastAPI(
        title="Demo Controls",
        version=__version__,
        description="Create and reset the TaskFlow demo branch, PR and Linear issues.",
        openapi_url="/api/openapi.json",
        docs_url="/api/docs",
        redoc_url=None,
    )

    app.state.settings = settings
    app.state.demo_service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.parsed_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/api/health")
    def health() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    @app.get("/api/demo/users", response_model=UsersResponse)
    def list_users() -> UsersResponse:
        return UsersResponse(users=service.identities.names())

    @app.post("/api/demo/create", response_model=DemoResponse, response_model_exclude_none=True)
    def create_demo(req: DemoRequest | None = None) -> DemoResponse:
        user_name = req.user_name if req is not None else None
        return _to_response(service.create_demo(user_name))

    @app.post("/api/demo/reset", response_model=DemoResponse, response_model_exclude_none=True)
    def reset_demo(req: DemoRequest | None = None) -> DemoResponse:
        user_name = req.user_name if req is not None else None
        return _to_response(service.reset_demo(user_name))

    @app.post("/api/demo/jobs", response_model=DemoJob, status_code=202)
    def start_job(req: DemoJobRequest) -> DemoJob:
        job_id = start_demo_job(
            action=req.action,
            user_name=req.user_name,
            service=service,
            job_store=job_store,
        )
        record = job_store.get(job_id)
        if record is None:
            raise HTTPException(status_code=500, detail="Job creation failed")
        logger.info("Demo job started", extra={"job_id": job_id, "action": req.action})
        return _to_api_job(record)

    @app.get("/api/demo/jobs/{job_id}", response_model=DemoJob)
    def get_job(job_id: str) -> DemoJob:
        record = job_store.get(job_id)
        if record is None:
            raise HTTPException(status_code=404, detail="Job not found")
        return _to_api_job(record)

    @app.get("/", include_in_schema=False)
    def panel() -> FileResponse:
        return FileResponse(PANEL_PATH, media_type="text/html")

    return app
