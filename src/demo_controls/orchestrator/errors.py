"""Error types raised by the demo orchestration components.

Expected absence (a missing branch, a missing project) is never an exception:
gateways return ``None``/``False`` for those. Everything here is either a
caller/configuration error surfaced with a user-facing message, or a remote
failure that aborts the current pipeline.
"""

from __future__ import annotations

from typing import Any


class DemoError(Exception):
    """Base class for demo orchestration errors."""


class MissingIdentity(DemoError):
    """Raised when no operator name was supplied."""

    def __init__(self) -> None:
        super().__init__("No user selected. Please select your name from the dropdown.")


class UnknownIdentity(DemoError):
    """Raised when the operator name is not in the identity table."""

    def __init__(self, name: str, valid_names: list[str]) -> None:
        self.name = name
        self.valid_names = list(valid_names)
        super().__init__(f'Invalid user "{name}". Valid users: {", ".join(self.valid_names)}')


class MissingCredential(DemoError):
    """Raised when a required API token is not configured."""

    def __init__(self, variable: str, instructions: str = "") -> None:
        self.variable = variable
        self.instructions = instructions
        super().__init__(f"{variable} environment variable is not set")


class RepositoryNotAccessible(DemoError):
    """Pre-flight failure: the repository is missing or the token cannot see it."""

    def __init__(self, repository: str) -> None:
        self.repository = repository
        super().__init__(f'Cannot access repository "{repository}"')

    @property
    def remediation(self) -> str:
        return "\n".join(
            [
                "Possible causes:",
                "1. The repository doesn't exist",
                "2. Your GITHUB_TOKEN doesn't have access to this repository",
                "3. The repository is private and the token lacks permissions",
                "",
                "To fix:",
                f"• Make sure the repository exists at https://github.com/{self.repository}",
                "• Ensure your token has 'repo' scope",
            ]
        )


class NotAFile(DemoError):
    """Raised when a contents lookup resolves to a directory listing."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Expected a file but got a directory: {path}")


class RemoteApiError(DemoError):
    """A non-success response from a remote service.

    ``detail`` holds the decoded error body when the service returned one, so the
    sequencer can surface it in the run log.
    """

    def __init__(self, message: str, *, status_code: int | None = None, detail: Any = None) -> None:
        self.status_code = status_code
        self.detail = detail
        super().__init__(message)


class GitHubApiError(RemoteApiError):
    """Unexpected GitHub REST failure."""


class ConflictingRevision(GitHubApiError):
    """A content write was rejected because the supplied sha is stale."""

    def __init__(self, path: str, *, status_code: int | None = None, detail: Any = None) -> None:
        self.path = path
        super().__init__(
            f"Conflicting revision for {path}: file changed since it was read",
            status_code=status_code,
            detail=detail,
        )


class LinearApiError(RemoteApiError):
    """GraphQL-level failure reported by Linear."""


class MutationNotApplied(DemoError):
    """Raised under the strict mutation policy when a bug injection did not take."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        super().__init__(f"Bug injection did not apply: {', '.join(self.missing)}")
