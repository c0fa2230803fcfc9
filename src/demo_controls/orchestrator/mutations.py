"""Text transforms that turn the TaskFlow template into the demo version.

The template files are fixed and version controlled, so these are literal
matches against known source text rather than syntax-aware edits. Every
function is pure; when a pattern is missing the input comes back unchanged and
callers use :func:`inspect_bugs` to find out.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

PAGE_FILE_PATH = "app/page.tsx"
LAYOUT_FILE_PATH = "app/layout.tsx"

NORMAL_TITLE = "TaskFlow - Simple Task Management"
DEMO_TITLE = "DEMO - TASKFLOW"

# Bug 1: deleteTask keeps the clicked task and drops every other one.
_DELETE_FILTER_RE = re.compile(r"setTasks\(tasks\.filter\(task => task\.id !== id\)\)")
_DELETE_FILTER_BUGGY = "setTasks(tasks.filter(task => task.id === id))"

# Bug 2: toggleTask mutates the task in place and hands React the same array.
CORRECT_TOGGLE = """const toggleTask = (id: string) => {
    setTasks(tasks.map(task =>
      task.id === id ? { ...task, completed: !task.completed } : task
    ))
  }"""

BUGGY_TOGGLE = """const toggleTask = (id: string) => {
    const task = tasks.find(t => t.id === id)
    if (task) {
      task.completed = !task.completed
      setTasks(tasks)
    }
  }"""

DELETE_BUG_MARKER = "task.id === id)"
TOGGLE_BUG_MARKER = "task.completed = !task.completed"


@dataclass(frozen=True, slots=True)
class BugReport:
    """Which post-mutation markers are present in a page source."""

    deletion_inverted: bool
    toggle_mutates: bool

    @property
    def all_applied(self) -> bool:
        return self.deletion_inverted and self.toggle_mutates

    def missing(self) -> list[str]:
        names: list[str] = []
        if not self.deletion_inverted:
            names.append("inverted deleteTask comparison")
        if not self.toggle_mutates:
            names.append("toggleTask state mutation")
        return names


def invert_delete_filter(text: str) -> str:
    return _DELETE_FILTER_RE.sub(_DELETE_FILTER_BUGGY, text)


def mutate_toggle(text: str) -> str:
    return text.replace(CORRECT_TOGGLE, BUGGY_TOGGLE, 1)


def inject_bugs(text: str) -> str:
    """Apply both demo bugs to the page source."""

    return mutate_toggle(invert_delete_filter(text))


def inspect_bugs(text: str) -> BugReport:
    return BugReport(
        deletion_inverted=DELETE_BUG_MARKER in text,
        toggle_mutates=TOGGLE_BUG_MARKER in text,
    )


def rename_title(text: str, from_title: str = NORMAL_TITLE, to_title: str = DEMO_TITLE) -> str:
    """Swap the layout's ``title: '...'`` assignment; no-op when it is absent."""

    return text.replace(f"title: '{from_title}'", f"title: '{to_title}'", 1)
