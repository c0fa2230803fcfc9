"""Test configuration and fixtures."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import Mock

import pytest

from demo_controls.orchestrator.config import DemoSettings
from demo_controls.orchestrator.github.client import FileSnapshot, GitHubClient, PullRequest
from demo_controls.server.config import ServerSettings

PAGE_SOURCE = """'use client'

import { useState } from 'react'

export default function Home() {
  const [tasks, setTasks] = useState<Task[]>([])

  const deleteTask = (id: string) => {
    setTasks(tasks.filter(task => task.id !== id))
  }

  const toggleTask = (id: string) => {
    setTasks(tasks.map(task =>
      task.id === id ? { ...task, completed: !task.completed } : task
    ))
  }

  return <TaskList tasks={tasks} onDelete={deleteTask} onToggle={toggleTask} />
}
"""

LAYOUT_SOURCE = """import type { Metadata } from 'next'

export const metadata: Metadata = {
  title: 'TaskFlow - Simple Task Management',
  description: 'Simple task management for small teams.',
}
"""

BASE_SHA = "a1b2c3d4e5f60718293a4b5c6d7e8f9012345678"


def _settings_values(**overrides: Any) -> dict[str, Any]:
    values: dict[str, Any] = {
        "GITHUB_TOKEN": "test-token",
        "LINEAR_API_KEY": "",
        "LOG_LEVEL": "DEBUG",
        "DEMO_BASE_BRANCH": "main",
        "DEMO_BRANCH": "demo-bugs",
        "DEMO_LINEAR_PROJECT": "Web-Demo",
        "DEMO_RESET_REPO": "govambam/flowmetrics-demo",
        "DEMO_IDENTITIES": {"Ryan": "rkp2525/taskflow-demo", "Ivan": "govambam/taskflow-demo"},
        "DEMO_MUTATION_POLICY": "lenient",
    }
    values.update(overrides)
    return values


@pytest.fixture
def make_settings() -> Callable[..., DemoSettings]:
    """Build settings from explicit values only (no `.env`)."""

    def _make(**overrides: Any) -> DemoSettings:
        return DemoSettings(_env_file=None, **_settings_values(**overrides))

    return _make


@pytest.fixture
def settings(make_settings: Callable[..., DemoSettings]) -> DemoSettings:
    return make_settings()


@pytest.fixture
def server_settings(tmp_path: Path) -> ServerSettings:
    return ServerSettings(
        _env_file=None,
        DEMO_JOBS_STATE_FILE=tmp_path / "state" / "demo_jobs.json",
        **_settings_values(),
    )


@pytest.fixture
def fake_github() -> Mock:
    """A GitHubClient double backed by an in-memory branch table.

    `branches` maps branch name -> sha; create/delete keep it up to date so tests
    can assert on the resulting state.
    """

    github = Mock(spec=GitHubClient)
    github.repository = "rkp2525/taskflow-demo"
    github.branches = {"main": BASE_SHA}

    github.get_branch_sha.side_effect = lambda branch: github.branches.get(branch)

    def delete_branch(branch: str) -> bool:
        return github.branches.pop(branch, None) is not None

    def create_branch(branch: str, base_sha: str) -> None:
        github.branches[branch] = base_sha

    github.delete_branch.side_effect = delete_branch
    github.create_branch.side_effect = create_branch

    files = {
        "app/page.tsx": FileSnapshot(
            path="app/page.tsx", ref="main", text=PAGE_SOURCE, sha="sha-page"
        ),
        "app/layout.tsx": FileSnapshot(
            path="app/layout.tsx", ref="main", text=LAYOUT_SOURCE, sha="sha-layout"
        ),
    }
    github.files = files
    github.read_file.side_effect = lambda path, ref: files[path]
    github.write_file.return_value = "sha-new"
    github.create_pull_request.return_value = PullRequest(
        number=42,
        title="feat: Optimize task operations for better performance",
        state="open",
        head_ref="demo-bugs",
        base_ref="main",
        url="https://github.com/rkp2525/taskflow-demo/pull/42",
    )
    github.list_open_pull_requests.return_value = []
    return github


@pytest.fixture
def page_source() -> str:
    return PAGE_SOURCE


@pytest.fixture
def layout_source() -> str:
    return LAYOUT_SOURCE
