"""Linear GraphQL client used to purge demo issues during reset."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import requests

from demo_controls.orchestrator.errors import LinearApiError

logger = logging.getLogger(__name__)

_TIMEOUT = 30
_PAGE_SIZE = 50


@dataclass(frozen=True, slots=True)
class LinearProject:
    id: str
    name: str


@dataclass(frozen=True, slots=True)
class LinearIssue:
    id: str
    identifier: str
    title: str


_PROJECT_BY_NAME = """
query($name: String!) {
  projects(filter: { name: { eq: $name } }, first: 1) {
    nodes { id name }
  }
}
"""

_PROJECT_ISSUES = """
query($projectId: ID!, $first: Int!, $after: String) {
  issues(filter: { project: { id: { eq: $projectId } } }, first: $first, after: $after) {
    nodes { id identifier title }
    pageInfo { hasNextPage endCursor }
  }
}
"""

_DELETE_ISSUE = """
mutation($id: String!) {
  issueDelete(id: $id) { success }
}
"""


class LinearClient:
    """Thin wrapper over the Linear GraphQL API.

    Linear expects the personal API key verbatim in the Authorization header (no
    "Bearer" prefix).
    """

    def __init__(
        self,
        *,
        api_key: str,
        api_url: str = "https://api.linear.app/graphql",
        session: requests.Session | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("Linear API key is required")
        self._api_url = api_url
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Authorization": api_key,
                "Content-Type": "application/json",
                "User-Agent": "demo-controls",
            }
        )

    def _graphql(self, *, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        resp = self._session.post(
            self._api_url, json={"query": query, "variables": variables}, timeout=_TIMEOUT
        )
        resp.raise_for_status()
        payload: dict[str, Any] = resp.json()
        errors = payload.get("errors")
        if errors:
            # Keep the message short; the full payload goes into `detail`.
            messages = []
            if isinstance(errors, list):
                for item in errors:
                    if isinstance(item, dict):
                        msg = item.get("message")
                        if isinstance(msg, str):
                            messages.append(msg)
            message = "; ".join(messages) if messages else "Unknown GraphQL error"
            raise LinearApiError(
                f"Linear GraphQL error: {message}", status_code=resp.status_code, detail=errors
            )
        data = payload.get("data")
        return data if isinstance(data, dict) else {}

    def find_project_by_name(self, name: str) -> LinearProject | None:
        data = self._graphql(query=_PROJECT_BY_NAME, variables={"name": name})
        projects = data.get("projects")
        nodes = projects.get("nodes") if isinstance(projects, dict) else None
        if not isinstance(nodes, list) or not nodes:
            return None
        node = nodes[0]
        if not isinstance(node, dict) or not isinstance(node.get("id"), str):
            return None
        return LinearProject(id=node["id"], name=str(node.get("name") or name))

    def list_issues(self, project_id: str) -> list[LinearIssue]:
        """Return every issue in a project, following cursor pagination."""

        issues: list[LinearIssue] = []
        after: str | None = None
        while True:
            data = self._graphql(
                query=_PROJECT_ISSUES,
                variables={"projectId": project_id, "first": _PAGE_SIZE, "after": after},
            )
            conn = data.get("issues")
            if not isinstance(conn, dict):
                break
            for node in conn.get("nodes") or []:
                if not isinstance(node, dict) or not isinstance(node.get("id"), str):
                    continue
                issues.append(
                    LinearIssue(
                        id=node["id"],
                        identifier=str(node.get("identifier") or node["id"]),
                        title=str(node.get("title") or ""),
                    )
                )
            page_info = conn.get("pageInfo")
            if not isinstance(page_info, dict) or not page_info.get("hasNextPage"):
                break
            after = page_info.get("endCursor")
            if not isinstance(after, str):
                break

        logger.debug(
            "Linear issues fetched", extra={"project_id": project_id, "count": len(issues)}
        )
        return issues

    def delete_issue(self, issue_id: str) -> bool:
        data = self._graphql(query=_DELETE_ISSUE, variables={"id": issue_id})
        result = data.get("issueDelete")
        success = isinstance(result, dict) and bool(result.get("success"))
        if not success:
            raise LinearApiError(f"Linear refused to delete issue {issue_id}", detail=data)
        logger.info("Linear issue deleted", extra={"issue_id": issue_id})
        return True

    def close(self) -> None:
        self._session.close()
