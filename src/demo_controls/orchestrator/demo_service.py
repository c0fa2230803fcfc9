"""Create/reset pipelines for the TaskFlow demo environment.

Both pipelines are straight-line sequences of remote calls with one shared
policy: expected absence (no demo branch yet, no Linear project) continues,
anything unexpected aborts the run. Errors are caught once, at the pipeline
boundary, and turned into a failed :class:`DemoRunResult` that still carries the
full transcript.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from demo_controls.orchestrator.config import DemoSettings
from demo_controls.orchestrator.errors import (
    MissingIdentity,
    MutationNotApplied,
    RepositoryNotAccessible,
    UnknownIdentity,
)
from demo_controls.orchestrator.github.client import GitHubClient
from demo_controls.orchestrator.identities import IdentityResolver, RepoTarget
from demo_controls.orchestrator.linear.client import LinearClient
from demo_controls.orchestrator.mutations import (
    DEMO_TITLE,
    LAYOUT_FILE_PATH,
    NORMAL_TITLE,
    PAGE_FILE_PATH,
    inject_bugs,
    inspect_bugs,
    rename_title,
)
from demo_controls.orchestrator.run_log import DemoRunResult, RunLog

logger = logging.getLogger(__name__)

GitHubFactory = Callable[[str], GitHubClient]
LinearFactory = Callable[[], LinearClient]

PR_TITLE = "feat: Optimize task operations for better performance"
PR_BODY = "This PR optimizes task management with improved delete and toggle logic."

PAGE_COMMIT_MESSAGE = """feat: Optimize task operations for better performance

- Optimized delete task function
- Refactored toggle task for efficiency"""
LAYOUT_COMMIT_MESSAGE = "chore: Update page title for demo"

TOKEN_SETUP_INSTRUCTIONS = """To fix this:
1. Set GITHUB_TOKEN in the server environment (or in .env)
2. Use a GitHub Personal Access Token
3. The token needs 'repo' scope
4. Restart the server

Create a token at: https://github.com/settings/tokens"""


class DemoService:
    """Runs the create/reset pipelines against GitHub and Linear."""

    def __init__(
        self,
        settings: DemoSettings,
        *,
        github_factory: GitHubFactory | None = None,
        linear_factory: LinearFactory | None = None,
    ) -> None:
        self._settings = settings
        self._identities = IdentityResolver(settings.identities)
        self._github_factory = github_factory or self._default_github
        self._linear_factory = linear_factory or self._default_linear

    @property
    def identities(self) -> IdentityResolver:
        return self._identities

    def _default_github(self, repository: str) -> GitHubClient:
        return GitHubClient(
            token=self._settings.github_token,
            repository=repository,
            base_url=self._settings.github_base_url,
        )

    def _default_linear(self) -> LinearClient:
        return LinearClient(
            api_key=self._settings.linear_api_key,
            api_url=self._settings.linear_api_url,
        )

    def _resolve(self, log: RunLog, user_name: str | None) -> RepoTarget | DemoRunResult:
        try:
            target = self._identities.resolve(user_name)
        except MissingIdentity as e:
            log(f"❌ Error: {e}")
            log.step("resolve_identity", "fatal", str(e))
            return log.fail("No user selected")
        except UnknownIdentity as e:
            log(f"❌ Error: {e}")
            log.step("resolve_identity", "fatal", str(e))
            return log.fail("Invalid user")
        log.step("resolve_identity", "ok", target.full_name)
        return target

    def create_demo(self, user_name: str | None) -> DemoRunResult:
        """Cut the demo branch, inject the bugs, and open the demo PR."""

        log = RunLog(action="create")

        resolved = self._resolve(log, user_name)
        if isinstance(resolved, DemoRunResult):
            return resolved
        target = resolved
        log.repository = target.full_name

        if not self._settings.has_github_token:
            log("❌ Error: GITHUB_TOKEN environment variable is not set.")
            log.blank()
            log(TOKEN_SETUP_INSTRUCTIONS)
            log.step("check_credentials", "fatal", "GITHUB_TOKEN missing")
            return log.fail("Missing GitHub token")
        log.step("check_credentials", "ok")

        log("🚀 Creating demo branch with intentional bugs...")
        log(f"User: {user_name}")
        log(f"Repository: {target.full_name}")
        log.blank()

        github = self._github_factory(target.full_name)
        try:
            return self._run_create(log, github)
        except RepositoryNotAccessible as e:
            log(f"❌ Error: {e}")
            log.blank()
            log(e.remediation)
            log.step("check_access", "fatal", str(e))
            return log.fail("Repository not accessible")
        except Exception as e:
            logger.exception("Create demo failed", extra={"repo": target.full_name})
            log.record_error(e)
            return log.fail(str(e))
        finally:
            github.close()

    def _run_create(self, log: RunLog, github: GitHubClient) -> DemoRunResult:
        base = self._settings.base_branch
        demo = self._settings.demo_branch

        log("Verifying repository access...")
        github.check_access()
        log("✓ Repository accessible")
        log.step("check_access", "ok")

        log.blank()
        log(f"Getting reference to {base} branch...")
        base_sha = github.get_branch_sha(base)
        if base_sha is None:
            raise ValueError(f"Base branch {base!r} not found in {github.repository}")
        log(f"✓ {base.capitalize()} branch SHA: {base_sha[:7]}")
        log.step("read_base_ref", "ok", base_sha)

        log.blank()
        log(f"Checking for existing {demo} branch...")
        if github.get_branch_sha(demo) is None:
            log(f"No existing {demo} branch found")
            log.step("delete_existing_branch", "absent")
        else:
            log(f"Deleting existing {demo} branch...")
            if github.delete_branch(demo):
                log("✓ Existing branch deleted")
                log.step("delete_existing_branch", "ok")
            else:
                # Gone between the lookup and the delete.
                log(f"No existing {demo} branch found")
                log.step("delete_existing_branch", "absent")

        log.blank()
        log(f"Creating {demo} branch...")
        github.create_branch(demo, base_sha)
        log("✓ Branch created")
        log.step("create_branch", "ok", base_sha)

        log.blank()
        log(f"Reading {PAGE_FILE_PATH} from {base}...")
        page = github.read_file(PAGE_FILE_PATH, base)
        log(f"✓ File retrieved ({page.size} bytes)")
        log(f"Reading {LAYOUT_FILE_PATH} from {base}...")
        layout = github.read_file(LAYOUT_FILE_PATH, base)
        log(f"✓ File retrieved ({layout.size} bytes)")
        log.step("read_files", "ok")

        log.blank()
        log("Introducing bugs...")
        log("  Bug 1: Inverted comparison in deleteTask (!== to ===)")
        log("  Bug 2: State mutation in toggleTask (direct mutation)")
        page_text = inject_bugs(page.text)

        report = inspect_bugs(page_text)
        if report.all_applied:
            log("✓ All 2 bugs successfully introduced")
            log.step("inject_bugs", "ok")
        else:
            log.blank()
            log("⚠️ Warning: Some bugs may not have been applied")
            log(f"  Bug 1 applied: {str(report.deletion_inverted).lower()}")
            log(f"  Bug 2 applied: {str(report.toggle_mutates).lower()}")
            if self._settings.mutation_policy == "strict":
                log.step("inject_bugs", "fatal", ", ".join(report.missing()))
                raise MutationNotApplied(report.missing())
            log.step("inject_bugs", "warning", ", ".join(report.missing()))

        log.blank()
        log("Changing tab title to demo mode...")
        layout_text = rename_title(layout.text, NORMAL_TITLE, DEMO_TITLE)
        if DEMO_TITLE in layout_text:
            log(f'✓ Tab title changed to "{DEMO_TITLE}"')
            log.step("rename_title", "ok")
        else:
            log("⚠️ Warning: Tab title may not have been changed")
            log.step("rename_title", "warning", "title literal not found")

        log.blank()
        log("Committing changes...")
        github.write_file(
            path=PAGE_FILE_PATH,
            content=page_text,
            sha=page.sha,
            branch=demo,
            message=PAGE_COMMIT_MESSAGE,
        )
        log(f"✓ {PAGE_FILE_PATH} committed")
        github.write_file(
            path=LAYOUT_FILE_PATH,
            content=layout_text,
            sha=layout.sha,
            branch=demo,
            message=LAYOUT_COMMIT_MESSAGE,
        )
        log(f"✓ {LAYOUT_FILE_PATH} committed")
        log.step("commit_files", "ok")

        log.blank()
        log("Creating Pull Request...")
        pr = github.create_pull_request(title=PR_TITLE, body=PR_BODY, head=demo, base=base)
        log(f"✓ PR #{pr.number} created")
        log.step("open_pull_request", "ok", str(pr.number))

        log.banner("✓ Demo setup complete!")
        log.blank()
        log(f"PR URL: {pr.url}")
        log.blank()
        log("Bugs introduced:")
        log("  1. Inverted comparison in deleteTask")
        log("     task.id === id  (should be !==)")
        log.blank()
        log("  2. State mutation in toggleTask")
        log("     Mutates task directly instead of creating new array")
        log("     Causes checkbox to not visually update")

        return log.succeed(pr_url=pr.url, pr_number=pr.number)

    def reset_demo(self, user_name: str | None = None) -> DemoRunResult:
        """Close open PRs, drop the demo branch, and purge the Linear demo project.

        Without an operator name the configured reset repository is used.
        """

        log = RunLog(action="reset")

        if not self._settings.has_github_token:
            log("Error: GITHUB_TOKEN environment variable is not set")
            log.step("check_credentials", "fatal", "GITHUB_TOKEN missing")
            return log.fail("Missing GitHub token")
        log.step("check_credentials", "ok")

        if user_name:
            resolved = self._resolve(log, user_name)
            if isinstance(resolved, DemoRunResult):
                return resolved
            target = resolved
        else:
            try:
                target = RepoTarget.parse(self._settings.reset_repository)
            except ValueError as e:
                log(f"❌ Error: {e}")
                log.step("resolve_identity", "fatal", str(e))
                return log.fail("Invalid reset repository")
        log.repository = target.full_name

        log("🧹 Resetting demo environment...")
        log(f"Repository: {target.full_name}")
        log.blank()

        github = self._github_factory(target.full_name)
        try:
            self._close_open_pull_requests(log, github)
            self._delete_demo_branch(log, github)
        except Exception as e:
            logger.exception("Reset demo failed", extra={"repo": target.full_name})
            log.record_error(e)
            return log.fail(str(e))
        finally:
            github.close()

        self._cleanup_linear(log)

        log.banner("✓ Demo reset complete!")
        log.blank()
        log("Ready to create a fresh demo PR.")
        return log.succeed()

    def _close_open_pull_requests(self, log: RunLog, github: GitHubClient) -> None:
        log("Looking for all open PRs...")
        open_prs = github.list_open_pull_requests()
        if not open_prs:
            log("No open PRs found")
            log.step("close_pull_requests", "absent")
            return

        log(f"Found {len(open_prs)} open PR(s) to close")
        for pr in open_prs:
            log(f"  Closing PR #{pr.number}: {pr.title}")
            github.close_pull_request(pr.number)
            log(f"  ✓ PR #{pr.number} closed")
        log.step("close_pull_requests", "ok", str(len(open_prs)))

    def _delete_demo_branch(self, log: RunLog, github: GitHubClient) -> None:
        demo = self._settings.demo_branch
        log.blank()
        log(f"Checking for {demo} branch...")
        absent_message = f"No {demo} branch found (already deleted or never created)"
        if github.get_branch_sha(demo) is None:
            log(absent_message)
            log.step("delete_branch", "absent")
            return
        log(f"Deleting {demo} branch...")
        if not github.delete_branch(demo):
            # Gone between the lookup and the delete.
            log(absent_message)
            log.step("delete_branch", "absent")
            return
        log("✓ Branch deleted")
        log.step("delete_branch", "ok")

    def _cleanup_linear(self, log: RunLog) -> None:
        """Best-effort: every failure here becomes a warning, never a failed reset."""

        project_name = self._settings.linear_project_name
        log.blank()
        log("Checking for Linear issues...")

        if not self._settings.has_linear_key:
            log("⚠️ LINEAR_API_KEY not set - skipping Linear cleanup")
            log.step("linear_cleanup", "absent", "LINEAR_API_KEY not set")
            return

        linear: LinearClient | None = None
        try:
            linear = self._linear_factory()
            project = linear.find_project_by_name(project_name)
            if project is None:
                log(f'No "{project_name}" project found in Linear')
                log.step("linear_cleanup", "absent", "project not found")
                return

            log(f'Found project "{project_name}" ({project.id})')
            issues = linear.list_issues(project.id)
            if not issues:
                log("No issues found in project")
                log.step("linear_cleanup", "ok", "0")
                return

            log(f"Found {len(issues)} issue(s) to delete")
            for issue in issues:
                log(f"  Deleting issue {issue.identifier}: {issue.title}")
                linear.delete_issue(issue.id)
                log(f"  ✓ Issue {issue.identifier} deleted")
            log.step("linear_cleanup", "ok", str(len(issues)))
        except Exception as e:
            log(f"⚠️ Linear cleanup failed: {e}")
            log("Continuing with reset...")
            log.step("linear_cleanup", "warning", str(e))
        finally:
            if linear is not None:
                linear.close()
