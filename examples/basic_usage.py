#!/usr/bin/env python3
"""Dry-run preview of the demo bug injection.

This demonstrates using the orchestrator components directly:

* load settings from `.env`
* resolve an operator name to its demo repository
* read `app/page.tsx` and `app/layout.tsx` from the base branch
* report which mutations would apply, without writing anything

Nothing is created, committed or deleted.
"""

from __future__ import annotations

import argparse
import difflib
from typing import Sequence

from demo_controls.orchestrator.config import DemoSettings
from demo_controls.orchestrator.github.client import GitHubClient
from demo_controls.orchestrator.identities import IdentityResolver
from demo_controls.orchestrator.logging import configure_logging
from demo_controls.orchestrator.mutations import (
    LAYOUT_FILE_PATH,
    PAGE_FILE_PATH,
    inject_bugs,
    inspect_bugs,
    rename_title,
)


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Preview the demo mutations (read-only).")
    parser.add_argument("--user", required=True, help="Operator name, e.g. Ryan")
    parser.add_argument("--diff", action="store_true", help="Print a unified diff of page.tsx")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    settings = DemoSettings()
    configure_logging(settings.log_level)

    target = IdentityResolver(settings.identities).resolve(args.user)
    github = GitHubClient(
        token=settings.github_token,
        repository=target.full_name,
        base_url=settings.github_base_url,
    )

    try:
        page = github.read_file(PAGE_FILE_PATH, settings.base_branch)
        layout = github.read_file(LAYOUT_FILE_PATH, settings.base_branch)
    finally:
        github.close()

    mutated = inject_bugs(page.text)
    report = inspect_bugs(mutated)
    renamed = rename_title(layout.text)

    print(f"Repository: {target.full_name} ({settings.base_branch})")
    print(f"Bug 1 (delete filter inverted): {report.deletion_inverted}")
    print(f"Bug 2 (toggle mutates state):   {report.toggle_mutates}")
    print(f"Title renamed:                  {renamed != layout.text}")

    if args.diff:
        print(
            "".join(
                difflib.unified_diff(
                    page.text.splitlines(keepends=True),
                    mutated.splitlines(keepends=True),
                    fromfile=f"a/{PAGE_FILE_PATH}",
                    tofile=f"b/{PAGE_FILE_PATH}",
                )
            )
        )
    return 0 if report.all_applied else 1


if __name__ == "__main__":
    raise SystemExit(main())
