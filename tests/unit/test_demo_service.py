"""Unit tests for the create/reset pipelines (GitHub and Linear mocked)."""

from __future__ import annotations

from collections.abc import Callable
from unittest.mock import Mock

import pytest

from demo_controls.orchestrator.config import DemoSettings
from demo_controls.orchestrator.demo_service import PR_BODY, PR_TITLE, DemoService
from demo_controls.orchestrator.errors import (
    ConflictingRevision,
    GitHubApiError,
    LinearApiError,
    RepositoryNotAccessible,
)
from demo_controls.orchestrator.github.client import FileSnapshot, PullRequest
from demo_controls.orchestrator.linear.client import LinearClient, LinearIssue, LinearProject
from demo_controls.orchestrator.mutations import BUGGY_TOGGLE, DEMO_TITLE

OLD_DEMO_SHA = "ffffeeee0000111122223333444455556666777"


def _service(
    settings: DemoSettings,
    github: Mock,
    linear: Mock | None = None,
    opened: list[str] | None = None,
) -> DemoService:
    def github_factory(repository: str) -> Mock:
        if opened is not None:
            opened.append(repository)
        return github

    def linear_factory() -> Mock:
        if linear is None:
            raise AssertionError("Linear client should not be created")
        return linear

    return DemoService(settings, github_factory=github_factory, linear_factory=linear_factory)


def _step(result, name: str) -> str:
    for step in result.steps:
        if step.name == name:
            return step.status
    raise AssertionError(f"step {name!r} not recorded")


def _open_pr(number: int) -> PullRequest:
    return PullRequest(
        number=number,
        title=f"PR {number}",
        state="open",
        head_ref=f"branch-{number}",
        base_ref="main",
        url=f"https://github.com/govambam/flowmetrics-demo/pull/{number}",
    )


# --- create ---------------------------------------------------------------------------


def test_create_demo_happy_path(settings: DemoSettings, fake_github: Mock) -> None:
    opened: list[str] = []
    result = _service(settings, fake_github, opened=opened).create_demo("Ryan")

    assert result.success is True
    assert result.error is None
    assert result.pr_number == 42
    assert result.pr_url == "https://github.com/rkp2525/taskflow-demo/pull/42"
    assert opened == ["rkp2525/taskflow-demo"]

    assert "Repository: rkp2525/taskflow-demo" in result.output
    assert "No existing demo-bugs branch found" in result.output
    assert "✓ All 2 bugs successfully introduced" in result.output
    assert f'✓ Tab title changed to "{DEMO_TITLE}"' in result.output
    assert "PR URL: https://github.com/rkp2525/taskflow-demo/pull/42" in result.output
    assert _step(result, "delete_existing_branch") == "absent"

    fake_github.check_access.assert_called_once()
    fake_github.delete_branch.assert_not_called()
    fake_github.create_branch.assert_called_once_with("demo-bugs", fake_github.branches["main"])

    page_write, layout_write = fake_github.write_file.call_args_list
    assert page_write.kwargs["path"] == "app/page.tsx"
    assert page_write.kwargs["sha"] == "sha-page"
    assert page_write.kwargs["branch"] == "demo-bugs"
    assert BUGGY_TOGGLE in page_write.kwargs["content"]
    assert layout_write.kwargs["path"] == "app/layout.tsx"
    assert layout_write.kwargs["sha"] == "sha-layout"
    assert DEMO_TITLE in layout_write.kwargs["content"]

    fake_github.create_pull_request.assert_called_once_with(
        title=PR_TITLE, body=PR_BODY, head="demo-bugs", base="main"
    )
    fake_github.close.assert_called_once()


def test_create_demo_replaces_existing_demo_branch(
    settings: DemoSettings, fake_github: Mock
) -> None:
    fake_github.branches["demo-bugs"] = OLD_DEMO_SHA

    result = _service(settings, fake_github).create_demo("Ryan")

    assert result.success is True
    lines = result.output.splitlines()
    deleting = lines.index("Deleting existing demo-bugs branch...")
    creating = lines.index("Creating demo-bugs branch...")
    assert deleting < creating
    assert _step(result, "delete_existing_branch") == "ok"

    # The new branch points at the base commit, not the stale demo commit.
    assert fake_github.branches["demo-bugs"] == fake_github.branches["main"]
    calls = [c[0] for c in fake_github.mock_calls]
    assert calls.index("delete_branch") < calls.index("create_branch")


def test_create_demo_branch_gone_before_delete_is_absent(
    settings: DemoSettings, fake_github: Mock
) -> None:
    fake_github.branches["demo-bugs"] = OLD_DEMO_SHA
    fake_github.delete_branch.side_effect = None
    fake_github.delete_branch.return_value = False

    result = _service(settings, fake_github).create_demo("Ryan")

    assert result.success is True
    assert "✓ Existing branch deleted" not in result.output
    assert "No existing demo-bugs branch found" in result.output
    assert _step(result, "delete_existing_branch") == "absent"
    fake_github.create_branch.assert_called_once()


def test_create_demo_unknown_identity_makes_no_calls(
    settings: DemoSettings, fake_github: Mock
) -> None:
    opened: list[str] = []
    result = _service(settings, fake_github, opened=opened).create_demo("Zed")

    assert result.success is False
    assert result.error == "Invalid user"
    assert 'Invalid user "Zed". Valid users: Ryan, Ivan' in result.output
    assert opened == []


def test_create_demo_missing_identity(settings: DemoSettings, fake_github: Mock) -> None:
    opened: list[str] = []
    result = _service(settings, fake_github, opened=opened).create_demo(None)

    assert result.success is False
    assert result.error == "No user selected"
    assert "select your name" in result.output
    assert opened == []


def test_create_demo_missing_token(
    make_settings: Callable[..., DemoSettings], fake_github: Mock
) -> None:
    opened: list[str] = []
    result = _service(make_settings(GITHUB_TOKEN=""), fake_github, opened=opened).create_demo(
        "Ryan"
    )

    assert result.success is False
    assert result.error == "Missing GitHub token"
    assert "GITHUB_TOKEN environment variable is not set" in result.output
    assert "'repo' scope" in result.output
    assert opened == []


def test_create_demo_repository_not_accessible(settings: DemoSettings, fake_github: Mock) -> None:
    fake_github.check_access.side_effect = RepositoryNotAccessible("rkp2525/taskflow-demo")

    result = _service(settings, fake_github).create_demo("Ryan")

    assert result.success is False
    assert result.error == "Repository not accessible"
    assert 'Cannot access repository "rkp2525/taskflow-demo"' in result.output
    assert "Ensure your token has 'repo' scope" in result.output
    fake_github.get_branch_sha.assert_not_called()
    fake_github.close.assert_called_once()


def test_create_demo_missing_delete_pattern_is_a_warning(
    settings: DemoSettings, fake_github: Mock
) -> None:
    page = fake_github.files["app/page.tsx"]
    fake_github.files["app/page.tsx"] = FileSnapshot(
        path=page.path,
        ref=page.ref,
        text=page.text.replace("setTasks(tasks.filter(task => task.id !== id))", "drop(id)"),
        sha=page.sha,
    )

    result = _service(settings, fake_github).create_demo("Ryan")

    assert result.success is True
    assert "⚠️ Warning: Some bugs may not have been applied" in result.output
    assert "  Bug 1 applied: false" in result.output
    assert "  Bug 2 applied: true" in result.output
    assert _step(result, "inject_bugs") == "warning"

    page_write = fake_github.write_file.call_args_list[0]
    assert "drop(id)" in page_write.kwargs["content"]
    fake_github.create_pull_request.assert_called_once()


def test_create_demo_strict_policy_stops_before_commit(
    make_settings: Callable[..., DemoSettings], fake_github: Mock
) -> None:
    page = fake_github.files["app/page.tsx"]
    fake_github.files["app/page.tsx"] = FileSnapshot(
        path=page.path, ref=page.ref, text="export default function Page() {}\n", sha=page.sha
    )

    result = _service(make_settings(DEMO_MUTATION_POLICY="strict"), fake_github).create_demo(
        "Ryan"
    )

    assert result.success is False
    assert "Bug injection did not apply" in (result.error or "")
    assert _step(result, "inject_bugs") == "fatal"
    fake_github.write_file.assert_not_called()
    fake_github.create_pull_request.assert_not_called()


def test_create_demo_title_missing_is_a_warning(settings: DemoSettings, fake_github: Mock) -> None:
    layout = fake_github.files["app/layout.tsx"]
    fake_github.files["app/layout.tsx"] = FileSnapshot(
        path=layout.path, ref=layout.ref, text="export const metadata = {}\n", sha=layout.sha
    )

    result = _service(settings, fake_github).create_demo("Ryan")

    assert result.success is True
    assert "⚠️ Warning: Tab title may not have been changed" in result.output
    assert _step(result, "rename_title") == "warning"


def test_create_demo_stale_sha_fails_the_run(settings: DemoSettings, fake_github: Mock) -> None:
    fake_github.write_file.side_effect = ConflictingRevision(
        "app/page.tsx", status_code=409, detail={"message": "does not match"}
    )

    result = _service(settings, fake_github).create_demo("Ryan")

    assert result.success is False
    assert "Conflicting revision for app/page.tsx" in (result.error or "")
    assert "Status: 409" in result.output
    assert '"message": "does not match"' in result.output
    # Progress up to the failure is still visible.
    assert "✓ Branch created" in result.output
    assert fake_github.write_file.call_count == 1
    fake_github.create_pull_request.assert_not_called()
    fake_github.close.assert_called_once()


def test_create_demo_missing_base_branch_fails(settings: DemoSettings, fake_github: Mock) -> None:
    fake_github.branches.clear()

    result = _service(settings, fake_github).create_demo("Ryan")

    assert result.success is False
    assert "Base branch 'main' not found" in (result.error or "")
    fake_github.create_branch.assert_not_called()


# --- reset ----------------------------------------------------------------------------


def test_reset_closes_all_prs_and_tolerates_missing_project(
    make_settings: Callable[..., DemoSettings], fake_github: Mock
) -> None:
    fake_github.list_open_pull_requests.return_value = [_open_pr(1), _open_pr(2), _open_pr(3)]
    fake_github.branches["demo-bugs"] = OLD_DEMO_SHA

    linear = Mock(spec=LinearClient)
    linear.find_project_by_name.return_value = None

    opened: list[str] = []
    service = _service(make_settings(LINEAR_API_KEY="lin_api_test"), fake_github, linear, opened)
    result = service.reset_demo()

    assert result.success is True
    assert opened == ["govambam/flowmetrics-demo"]
    assert [c.args[0] for c in fake_github.close_pull_request.call_args_list] == [1, 2, 3]
    assert "Found 3 open PR(s) to close" in result.output
    assert "demo-bugs" not in fake_github.branches
    assert "✓ Branch deleted" in result.output
    assert 'No "Web-Demo" project found in Linear' in result.output
    assert "✓ Demo reset complete!" in result.output
    assert _step(result, "linear_cleanup") == "absent"
    linear.find_project_by_name.assert_called_once_with("Web-Demo")
    linear.list_issues.assert_not_called()
    linear.close.assert_called_once()


def test_reset_with_identity_uses_identity_repository(
    settings: DemoSettings, fake_github: Mock
) -> None:
    opened: list[str] = []
    result = _service(settings, fake_github, opened=opened).reset_demo("Ivan")

    assert result.success is True
    assert opened == ["govambam/taskflow-demo"]
    assert "No open PRs found" in result.output
    assert "No demo-bugs branch found (already deleted or never created)" in result.output
    fake_github.delete_branch.assert_not_called()


def test_reset_with_malformed_reset_repository_returns_failed_result(
    settings: DemoSettings, fake_github: Mock
) -> None:
    # model_copy skips validation, so this reaches the pipeline unchecked.
    bad = settings.model_copy(update={"reset_repository": "govambam/flowmetrics-demo/extra"})
    opened: list[str] = []

    result = _service(bad, fake_github, opened=opened).reset_demo(None)

    assert result.success is False
    assert result.error == "Invalid reset repository"
    assert "❌ Error: Repository must be in the form" in result.output
    assert opened == []


def test_reset_unknown_identity(settings: DemoSettings, fake_github: Mock) -> None:
    opened: list[str] = []
    result = _service(settings, fake_github, opened=opened).reset_demo("Zed")

    assert result.success is False
    assert "Valid users: Ryan, Ivan" in result.output
    assert opened == []


def test_reset_deletes_every_issue_in_project(
    make_settings: Callable[..., DemoSettings], fake_github: Mock
) -> None:
    linear = Mock(spec=LinearClient)
    linear.find_project_by_name.return_value = LinearProject(id="proj-1", name="Web-Demo")
    linear.list_issues.return_value = [
        LinearIssue(id="i1", identifier="WEB-1", title="Delete is broken"),
        LinearIssue(id="i2", identifier="WEB-2", title="Checkbox does not update"),
    ]
    linear.delete_issue.return_value = True

    result = _service(make_settings(LINEAR_API_KEY="lin_api_test"), fake_github, linear).reset_demo()

    assert result.success is True
    assert [c.args[0] for c in linear.delete_issue.call_args_list] == ["i1", "i2"]
    assert "Found 2 issue(s) to delete" in result.output
    assert "  ✓ Issue WEB-2 deleted" in result.output
    linear.list_issues.assert_called_once_with("proj-1")


def test_reset_linear_failure_is_only_a_warning(
    make_settings: Callable[..., DemoSettings], fake_github: Mock
) -> None:
    linear = Mock(spec=LinearClient)
    linear.find_project_by_name.side_effect = LinearApiError("Linear GraphQL error: boom")

    result = _service(make_settings(LINEAR_API_KEY="lin_api_test"), fake_github, linear).reset_demo()

    assert result.success is True
    assert "⚠️ Linear cleanup failed: Linear GraphQL error: boom" in result.output
    assert "Continuing with reset..." in result.output
    assert _step(result, "linear_cleanup") == "warning"


def test_reset_without_linear_key_skips_cleanup(settings: DemoSettings, fake_github: Mock) -> None:
    result = _service(settings, fake_github, linear=None).reset_demo()

    assert result.success is True
    assert "⚠️ LINEAR_API_KEY not set - skipping Linear cleanup" in result.output


def test_reset_missing_token(
    make_settings: Callable[..., DemoSettings], fake_github: Mock
) -> None:
    opened: list[str] = []
    result = _service(make_settings(GITHUB_TOKEN=""), fake_github, opened=opened).reset_demo()

    assert result.success is False
    assert result.error == "Missing GitHub token"
    assert opened == []


def test_reset_github_failure_aborts_with_partial_log(
    settings: DemoSettings, fake_github: Mock
) -> None:
    fake_github.list_open_pull_requests.return_value = [_open_pr(1), _open_pr(2)]
    fake_github.close_pull_request.side_effect = [
        None,
        GitHubApiError("Close pull request #2 failed (403)", status_code=403, detail={}),
    ]

    result = _service(settings, fake_github).reset_demo()

    assert result.success is False
    assert "  ✓ PR #1 closed" in result.output
    assert "❌ Error: Close pull request #2 failed (403)" in result.output
    assert "Status: 403" in result.output
    fake_github.get_branch_sha.assert_not_called()
    fake_github.close.assert_called_once()


@pytest.mark.parametrize("action", ["create", "reset"])
def test_unexpected_errors_never_escape(
    settings: DemoSettings, fake_github: Mock, action: str
) -> None:
    fake_github.get_branch_sha.side_effect = RuntimeError("connection reset")

    service = _service(settings, fake_github)
    result = service.create_demo("Ryan") if action == "create" else service.reset_demo("Ryan")

    assert result.success is False
    assert result.error == "connection reset"
    assert "❌ Error: connection reset" in result.output
