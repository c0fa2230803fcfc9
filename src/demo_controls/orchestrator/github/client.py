"""GitHub API client wrapper for the demo pipelines.

REST calls go through a `requests` session so tests can inject a fake one; the
repository pre-flight uses PyGithub, which already maps a 404 to
``UnknownObjectException``.

Every method is a single round trip with no retry. Expected absence (a branch
that does not exist) is reported through the return value, never raised.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import Any

import requests
from github import Auth, Github, UnknownObjectException

from demo_controls.orchestrator.errors import (
    ConflictingRevision,
    GitHubApiError,
    NotAFile,
    RepositoryNotAccessible,
)

logger = logging.getLogger(__name__)

_TIMEOUT = 30


@dataclass(frozen=True, slots=True)
class FileSnapshot:
    """A text file as read from a ref, plus the blob sha needed to update it."""

    path: str
    ref: str
    text: str
    sha: str

    @property
    def size(self) -> int:
        return len(self.text)


@dataclass(frozen=True, slots=True)
class PullRequest:
    """Minimal pull request metadata."""

    number: int
    title: str
    state: str
    head_ref: str
    base_ref: str
    url: str | None


class GitHubClient:
    """Small wrapper around the GitHub REST endpoints the demo pipelines need."""

    def __init__(
        self,
        *,
        token: str,
        repository: str,
        base_url: str = "https://api.github.com",
        session: requests.Session | None = None,
        github_api: Github | None = None,
    ) -> None:
        if not token:
            raise ValueError("GitHub token is required")
        if not repository.strip().strip("/"):
            raise ValueError("GitHub repository is required")

        self._repository_name = repository.strip().strip("/")
        self._rest_base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
                "User-Agent": "demo-controls",
            }
        )
        self._github = github_api or Github(auth=Auth.Token(token), base_url=self._rest_base_url)

    @property
    def repository(self) -> str:
        """Return the configured repository name ("owner/repo")."""

        return self._repository_name

    def _repo_url(self, path: str) -> str:
        path = path.strip("/")
        base = f"{self._rest_base_url}/repos/{self._repository_name}"
        return f"{base}/{path}" if path else base

    @staticmethod
    def _error_detail(resp: requests.Response) -> Any:
        try:
            return resp.json()
        except ValueError:
            return resp.text

    def _raise_for_status(self, resp: requests.Response, action: str) -> None:
        if 200 <= resp.status_code < 300:
            return
        detail = self._error_detail(resp)
        message = ""
        if isinstance(detail, dict) and isinstance(detail.get("message"), str):
            message = detail["message"]
        summary = f"{action} failed ({resp.status_code})"
        if message:
            summary = f"{summary}: {message}"
        raise GitHubApiError(summary, status_code=resp.status_code, detail=detail)

    def check_access(self) -> None:
        """Pre-flight: confirm the repository exists and the token can see it."""

        try:
            repo = self._github.get_repo(self._repository_name)
        except UnknownObjectException as e:
            raise RepositoryNotAccessible(self._repository_name) from e
        logger.info(
            "Repository accessible",
            extra={"repo": self._repository_name, "private": getattr(repo, "private", None)},
        )

    def get_branch_sha(self, branch: str) -> str | None:
        """Return the head commit sha of a branch, or None if it does not exist."""

        if not branch.strip():
            raise ValueError("branch is required")
        resp = self._session.get(self._repo_url(f"git/ref/heads/{branch}"), timeout=_TIMEOUT)
        if resp.status_code == 404:
            return None
        self._raise_for_status(resp, f"Get ref heads/{branch}")
        data: dict[str, Any] = resp.json()
        obj = data.get("object")
        if not isinstance(obj, dict):
            raise ValueError("Unexpected ref response: missing object")
        sha = obj.get("sha")
        if not isinstance(sha, str) or not sha.strip():
            raise ValueError("Unexpected ref response: missing sha")
        return sha

    def delete_branch(self, branch: str) -> bool:
        """Delete a branch. Returns False when there was nothing to delete."""

        if not branch.strip():
            raise ValueError("branch is required")
        resp = self._session.delete(self._repo_url(f"git/refs/heads/{branch}"), timeout=_TIMEOUT)
        if resp.status_code == 404:
            return False
        self._raise_for_status(resp, f"Delete ref heads/{branch}")
        logger.info("Branch deleted", extra={"repo": self._repository_name, "branch": branch})
        return True

    def create_branch(self, branch: str, base_sha: str) -> None:
        if not branch.strip():
            raise ValueError("branch is required")
        if not base_sha.strip():
            raise ValueError("base_sha is required")

        payload = {"ref": f"refs/heads/{branch}", "sha": base_sha}
        resp = self._session.post(self._repo_url("git/refs"), json=payload, timeout=_TIMEOUT)
        self._raise_for_status(resp, f"Create ref heads/{branch}")
        logger.info(
            "Branch created",
            extra={"repo": self._repository_name, "branch": branch, "sha": base_sha},
        )

    def read_file(self, path: str, ref: str) -> FileSnapshot:
        """Read a UTF-8 text file at a ref.

        Raises:
            NotAFile if the path resolves to a directory listing or a non-file entry.
        """

        norm = path.lstrip("/")
        params = {"ref": ref} if ref.strip() else None
        resp = self._session.get(self._repo_url(f"contents/{norm}"), params=params, timeout=_TIMEOUT)
        self._raise_for_status(resp, f"Get contents {norm}")
        data = resp.json()

        if isinstance(data, list) or not isinstance(data, dict) or data.get("type") != "file":
            raise NotAFile(norm)

        file_sha = data.get("sha")
        if not isinstance(file_sha, str) or not file_sha.strip():
            raise ValueError("Unexpected contents response: missing sha")

        content = data.get("content")
        if not isinstance(content, str):
            raise ValueError("Unexpected contents response: missing content")
        if data.get("encoding", "base64") == "base64":
            text = base64.b64decode(content.encode("utf-8")).decode("utf-8")
        else:
            text = content
        return FileSnapshot(path=norm, ref=ref, text=text, sha=file_sha)

    def write_file(
        self,
        *,
        path: str,
        content: str,
        sha: str,
        branch: str,
        message: str,
    ) -> str:
        """Update a text file, guarded by the sha it was read at.

        Returns:
            New file sha.

        Raises:
            ConflictingRevision if GitHub rejects ``sha`` as stale.
        """

        if not sha.strip():
            raise ValueError("sha is required to update an existing file")

        norm = path.lstrip("/")
        payload: dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("utf-8"),
            "sha": sha,
            "branch": branch,
        }
        resp = self._session.put(self._repo_url(f"contents/{norm}"), json=payload, timeout=_TIMEOUT)
        if resp.status_code == 409 or (
            resp.status_code == 422 and "sha" in str(self._error_detail(resp)).lower()
        ):
            raise ConflictingRevision(
                norm, status_code=resp.status_code, detail=self._error_detail(resp)
            )
        self._raise_for_status(resp, f"Update contents {norm}")

        data: dict[str, Any] = resp.json()
        content_info = data.get("content")
        if isinstance(content_info, dict):
            new_sha = content_info.get("sha")
            if isinstance(new_sha, str) and new_sha.strip():
                logger.info(
                    "File committed",
                    extra={"repo": self._repository_name, "path": norm, "branch": branch},
                )
                return new_sha
        raise ValueError("Unexpected contents update response: missing content sha")

    def _get_paginated_json_list(
        self, url: str, params: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        """Fetch a REST endpoint that returns a JSON list, following basic pagination.

        Notes:
            Fetches up to 10 pages of 100 items each.
        """

        items: list[dict[str, Any]] = []
        per_page = 100
        for page in range(1, 11):
            resp = self._session.get(
                url,
                params={**(params or {}), "per_page": per_page, "page": page},
                timeout=_TIMEOUT,
            )
            self._raise_for_status(resp, "List")
            payload = resp.json()
            if not isinstance(payload, list):
                break

            items.extend(p for p in payload if isinstance(p, dict))

            if len(payload) < per_page:
                break
        return items

    @staticmethod
    def _parse_pull_request_json(data: dict[str, Any]) -> PullRequest:
        number = data.get("number")
        if not isinstance(number, int) or number <= 0:
            raise ValueError("Invalid pull request response: missing number")

        title = data.get("title")
        if not isinstance(title, str):
            title = ""

        state = data.get("state")
        if not isinstance(state, str):
            state = ""

        head = data.get("head")
        base = data.get("base")
        head_ref = head.get("ref") if isinstance(head, dict) else None
        base_ref = base.get("ref") if isinstance(base, dict) else None

        html_url = data.get("html_url")
        if not isinstance(html_url, str) or not html_url.strip():
            html_url = None

        return PullRequest(
            number=number,
            title=title,
            state=state,
            head_ref=head_ref if isinstance(head_ref, str) else "",
            base_ref=base_ref if isinstance(base_ref, str) else "",
            url=html_url,
        )

    def list_open_pull_requests(self) -> list[PullRequest]:
        raw = self._get_paginated_json_list(self._repo_url("pulls"), params={"state": "open"})
        return [self._parse_pull_request_json(item) for item in raw]

    def close_pull_request(self, number: int) -> PullRequest:
        if number <= 0:
            raise ValueError("pull request number must be a positive integer")
        resp = self._session.patch(
            self._repo_url(f"pulls/{number}"), json={"state": "closed"}, timeout=_TIMEOUT
        )
        self._raise_for_status(resp, f"Close pull request #{number}")
        pr = self._parse_pull_request_json(resp.json())
        logger.info(
            "Pull request closed", extra={"repo": self._repository_name, "pull_number": number}
        )
        return pr

    def create_pull_request(self, *, title: str, body: str, head: str, base: str) -> PullRequest:
        payload = {"title": title, "body": body, "head": head, "base": base}
        resp = self._session.post(self._repo_url("pulls"), json=payload, timeout=_TIMEOUT)
        self._raise_for_status(resp, "Create pull request")
        pr = self._parse_pull_request_json(resp.json())
        logger.info(
            "Pull request created",
            extra={"repo": self._repository_name, "pull_number": pr.number, "head": head},
        )
        return pr

    def close(self) -> None:
        self._session.close()
        self._github.close()
