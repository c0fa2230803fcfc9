"""Run transcript and result types shared by the demo pipelines."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Literal

from github import GithubException
from pydantic import BaseModel, Field

from demo_controls.orchestrator.errors import RemoteApiError

logger = logging.getLogger(__name__)

StepStatus = Literal["ok", "absent", "warning", "fatal"]

RULE = "═" * 64


class StepOutcome(BaseModel):
    """Outcome of one named pipeline step."""

    name: str
    status: StepStatus
    detail: str | None = None


class DemoRunResult(BaseModel):
    """What a pipeline hands back to its caller, success or not."""

    success: bool
    output: str
    error: str | None = None
    pr_url: str | None = None
    pr_number: int | None = None
    steps: list[StepOutcome] = Field(default_factory=list)


@dataclass
class RunLog:
    """Accumulates human-readable lines for one run.

    Each line is also forwarded to the process logger so server logs carry the
    same transcript the operator sees.
    """

    action: str
    repository: str | None = None
    lines: list[str] = field(default_factory=list)
    steps: list[StepOutcome] = field(default_factory=list)

    def __call__(self, message: str = "") -> None:
        self.lines.append(message)
        if message:
            logger.info(message, extra={"action": self.action, "repo": self.repository})

    def blank(self) -> None:
        self("")

    def step(self, name: str, status: StepStatus, detail: str | None = None) -> None:
        self.steps.append(StepOutcome(name=name, status=status, detail=detail))
        if status == "warning":
            logger.warning(
                "Step finished with a warning",
                extra={"action": self.action, "step": name, "detail": detail},
            )

    def banner(self, message: str) -> None:
        self.blank()
        self(RULE)
        self(message)
        self(RULE)

    def record_error(self, error: BaseException) -> None:
        """Append the terminal error, plus remote status/detail when present."""

        self.blank()
        self(f"❌ Error: {error}")
        status, detail = _remote_details(error)
        if status is not None:
            self(f"Status: {status}")
        if detail is not None:
            self(f"Details: {json.dumps(detail, indent=2, default=str)}")

    @property
    def output(self) -> str:
        return "\n".join(self.lines)

    def succeed(self, **extra: Any) -> DemoRunResult:
        return DemoRunResult(success=True, output=self.output, steps=list(self.steps), **extra)

    def fail(self, error: str) -> DemoRunResult:
        return DemoRunResult(success=False, output=self.output, error=error, steps=list(self.steps))


def _remote_details(error: BaseException) -> tuple[int | None, Any]:
    if isinstance(error, RemoteApiError):
        return error.status_code, error.detail
    if isinstance(error, GithubException):
        return error.status, error.data
    response = getattr(error, "response", None)
    if response is None:
        return None, None
    status = getattr(response, "status_code", None)
    try:
        detail = response.json()
    except ValueError:
        detail = getattr(response, "text", None)
    return status, detail
