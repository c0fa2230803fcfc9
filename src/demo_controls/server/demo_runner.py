"""Background runner for demo create/reset jobs."""

from __future__ import annotations

import logging
import threading
import uuid

from demo_controls.orchestrator.demo_service import DemoService
from demo_controls.server.job_store import JobStore

logger = logging.getLogger(__name__)


def start_demo_job(
    *,
    action: str,
    user_name: str | None,
    service: DemoService,
    job_store: JobStore,
) -> str:
    job_id = uuid.uuid4().hex
    job_store.create(job_id=job_id, action=action, user_name=user_name)

    thread = threading.Thread(
        target=_run_job,
        name=f"demo-{action}-{job_id}",
        daemon=True,
        kwargs={
            "job_id": job_id,
            "action": action,
            "user_name": user_name,
            "service": service,
            "job_store": job_store,
        },
    )
    thread.start()
    return job_id


def _run_job(
    *,
    job_id: str,
    action: str,
    user_name: str | None,
    service: DemoService,
    job_store: JobStore,
) -> None:
    job_store.update(job_id, status="running")

    try:
        if action == "create":
            result = service.create_demo(user_name)
        elif action == "reset":
            result = service.reset_demo(user_name)
        else:
            raise ValueError(f"Unknown demo action: {action}")

        job_store.update(
            job_id,
            status="succeeded" if result.success else "failed",
            success=result.success,
            output=result.output,
            error=result.error,
            pr_url=result.pr_url,
            pr_number=result.pr_number,
        )

    except Exception as e:
        logger.exception("Demo job failed", extra={"job_id": job_id, "action": action})
        job_store.update(job_id, status="failed", success=False, error=str(e))
