"""Configuration for the demo orchestration helper.

Configuration is loaded from:
- environment variables
- and a local `.env` file (if present)

Credentials are deliberately optional here. The pipelines check for them at run
time so a missing token produces setup instructions in the run log instead of
failing process startup.
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from demo_controls.orchestrator.identities import RepoTarget

DEFAULT_IDENTITIES: dict[str, str] = {
    "Ryan": "rkp2525/taskflow-demo",
    "Ivan": "govambam/taskflow-demo",
}

MutationPolicy = Literal["lenient", "strict"]


class DemoSettings(BaseSettings):
    """Settings shared by the CLI and the server.

    Environment variables:
    - GITHUB_TOKEN          (checked per run)
    - GITHUB_BASE_URL       (optional)
    - LINEAR_API_KEY        (optional; Linear cleanup is skipped without it)
    - LINEAR_API_URL        (optional)
    - LOG_LEVEL             (optional)
    - DEMO_BASE_BRANCH, DEMO_BRANCH, DEMO_LINEAR_PROJECT, DEMO_RESET_REPO
    - DEMO_IDENTITIES       (optional JSON object: {"Name": "owner/repo"})
    - DEMO_MUTATION_POLICY  (optional: lenient | strict)

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `DemoSettings(_env_file=path_to_env)`.
    """

    github_token: str = Field(
        default="",
        validation_alias="GITHUB_TOKEN",
        description="GitHub token with 'repo' scope",
    )
    github_base_url: str = Field(
        default="https://api.github.com",
        validation_alias="GITHUB_BASE_URL",
        description="GitHub API base URL (useful for GitHub Enterprise)",
    )

    linear_api_key: str = Field(
        default="",
        validation_alias="LINEAR_API_KEY",
        description="Linear API key used to purge demo issues during reset",
    )
    linear_api_url: str = Field(
        default="https://api.linear.app/graphql",
        validation_alias="LINEAR_API_URL",
    )

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )

    base_branch: str = Field(default="main", validation_alias="DEMO_BASE_BRANCH")
    demo_branch: str = Field(default="demo-bugs", validation_alias="DEMO_BRANCH")
    linear_project_name: str = Field(default="Web-Demo", validation_alias="DEMO_LINEAR_PROJECT")

    reset_repository: str = Field(
        default="govambam/flowmetrics-demo",
        validation_alias="DEMO_RESET_REPO",
        description="Repository reset when no operator identity is supplied",
    )

    identities: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_IDENTITIES),
        validation_alias="DEMO_IDENTITIES",
        description="Operator name -> 'owner/repo'",
    )

    mutation_policy: MutationPolicy = Field(
        default="lenient",
        validation_alias="DEMO_MUTATION_POLICY",
        description=(
            "lenient: a bug injection that did not apply is logged as a warning and the "
            "PR is still opened. strict: the create run fails before committing."
        ),
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
        env_ignore_empty=True,
        populate_by_name=True,
    )

    @field_validator("reset_repository")
    @classmethod
    def _check_reset_repository(cls, value: str) -> str:
        try:
            return RepoTarget.parse(value).full_name
        except ValueError as e:
            raise ValueError(f"DEMO_RESET_REPO: {e}") from e

    @property
    def has_github_token(self) -> bool:
        return bool(self.github_token.strip())

    @property
    def has_linear_key(self) -> bool:
        return bool(self.linear_api_key.strip())
