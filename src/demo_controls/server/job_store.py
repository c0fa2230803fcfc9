"""Persisted records for background demo runs.

The panel starts a run, gets a job id back, and polls it. Records are written to
a small JSON file (``{job_id: record}``) so polling survives a server restart,
best-effort. Only the newest ``max_jobs`` records are kept.

Nothing here serializes runs against each other; two create jobs for the same
repository can still race on the branch.
"""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ValidationError

JobState = Literal["queued", "running", "succeeded", "failed"]


class JobRecord(BaseModel):
    job_id: str
    action: str
    user_name: str | None = None
    status: JobState = "queued"
    created_at: str
    updated_at: str

    # Copied from the DemoRunResult once the run finishes.
    success: bool | None = None
    output: str | None = None
    error: str | None = None
    pr_url: str | None = None
    pr_number: int | None = None

    @property
    def finished(self) -> bool:
        return self.status in ("succeeded", "failed")


def _utc_iso_now() -> str:
    return datetime.now(tz=UTC).isoformat()


@dataclass
class JobStore:
    path: Path
    max_jobs: int = 50

    def __post_init__(self) -> None:
        self._lock = threading.Lock()

    def _read_unlocked(self) -> dict[str, JobRecord]:
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError:
            return {}
        if not isinstance(raw, dict):
            return {}
        jobs: dict[str, JobRecord] = {}
        for job_id, item in raw.items():
            try:
                jobs[job_id] = JobRecord.model_validate(item)
            except ValidationError:
                continue
        return jobs

    def _write_unlocked(self, jobs: dict[str, JobRecord]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {job_id: job.model_dump(mode="json") for job_id, job in jobs.items()}
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
        tmp.replace(self.path)

    def _prune(self, jobs: dict[str, JobRecord]) -> dict[str, JobRecord]:
        if len(jobs) <= self.max_jobs:
            return jobs
        newest = sorted(jobs.values(), key=lambda j: j.created_at, reverse=True)[: self.max_jobs]
        return {job.job_id: job for job in sorted(newest, key=lambda j: j.created_at)}

    def get(self, job_id: str) -> JobRecord | None:
        with self._lock:
            return self._read_unlocked().get(job_id)

    def create(self, *, job_id: str, action: str, user_name: str | None) -> JobRecord:
        with self._lock:
            jobs = self._read_unlocked()
            if job_id in jobs:
                raise ValueError(f"Job already exists: {job_id}")
            now = _utc_iso_now()
            record = JobRecord(
                job_id=job_id,
                action=action,
                user_name=user_name,
                created_at=now,
                updated_at=now,
            )
            jobs[job_id] = record
            self._write_unlocked(self._prune(jobs))
            return record

    def update(self, job_id: str, **updates: object) -> JobRecord:
        with self._lock:
            jobs = self._read_unlocked()
            current = jobs.get(job_id)
            if current is None:
                raise KeyError(job_id)
            # model_copy skips validation; round-trip so a bad status is rejected.
            merged = JobRecord.model_validate(
                {**current.model_dump(), **updates, "updated_at": _utc_iso_now()}
            )
            jobs[job_id] = merged
            self._write_unlocked(jobs)
            return merged
