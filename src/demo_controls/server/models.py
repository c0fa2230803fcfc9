"""Pydantic models for the REST server."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from demo_controls.server.job_store import JobState as JobStatus

DemoAction = Literal["create", "reset"]


class DemoRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_name: str | None = Field(default=None, alias="userName")


class DemoJobRequest(DemoRequest):
    action: DemoAction


class DemoResponse(BaseModel):
    """Wire shape of a finished run, as the panel expects it."""

    success: bool
    output: str
    error: str | None = None
    prUrl: str | None = None
    prNumber: int | None = None


class DemoJob(BaseModel):
    job_id: str = Field(serialization_alias="jobId")
    action: DemoAction
    user_name: str | None = Field(default=None, serialization_alias="userName")
    status: JobStatus

    created_at: datetime = Field(serialization_alias="createdAt")
    updated_at: datetime = Field(serialization_alias="updatedAt")

    success: bool | None = None
    output: str | None = None
    error: str | None = None
    pr_url: str | None = Field(default=None, serialization_alias="prUrl")
    pr_number: int | None = Field(default=None, serialization_alias="prNumber")


class UsersResponse(BaseModel):
    users: list[str]
