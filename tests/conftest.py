"""
Pytest configuration and shared fixtures.

Provides fixtures for temp project directories, sample task lists, and an
in-memory stand-in for the beads CLI used across the test suite.
"""

import json
from pathlib import Path
from typing import Any

import pytest

from tm2bd.core.beads import BeadsCommandError, CreatedIssue, IssueKind
from tm2bd.core.config import clear_cache
from tm2bd.core.tasks.models import Subtask, Task, TaskList, TaskPriority, TaskStatus

# ==============================================================================
# Fake Issue Tracker
# ==============================================================================


class FakeTracker:
    """
    In-memory issue tracker that records every call.

    Ids are handed out sequentially as ``bd-1``, ``bd-2``... in creation
    order. Set ``fail_on`` to a (method, call_number) pair to make the
    n-th call of that method raise BeadsCommandError.
    """

    def __init__(self, initialized: bool = True) -> None:
        self.initialized = initialized
        self.created: list[dict[str, Any]] = []
        self.dependencies: list[tuple[str, str]] = []
        self.status_updates: list[tuple[str, str]] = []
        self.closed: list[str] = []
        self.fail_on: tuple[str, int] | None = None
        self._calls: dict[str, int] = {}
        self._next_id = 1

    def _tick(self, method: str) -> None:
        self._calls[method] = self._calls.get(method, 0) + 1
        if self.fail_on == (method, self._calls[method]):
            raise BeadsCommandError(f"bd {method} failed", command=["bd", method], stderr="boom")

    def _new_id(self) -> str:
        issue_id = f"bd-{self._next_id}"
        self._next_id += 1
        return issue_id

    def create_epic(self, title: str, description: str, priority: int) -> CreatedIssue:
        self._tick("create_epic")
        issue_id = self._new_id()
        self.created.append(
            {
                "id": issue_id,
                "kind": "epic",
                "title": title,
                "description": description,
                "priority": priority,
                "parent": None,
            }
        )
        return CreatedIssue(id=issue_id, title=title, kind=IssueKind.EPIC)

    def create_child(self, parent_id: str, title: str, description: str) -> CreatedIssue:
        self._tick("create_child")
        issue_id = self._new_id()
        self.created.append(
            {
                "id": issue_id,
                "kind": "child",
                "title": title,
                "description": description,
                "priority": None,
                "parent": parent_id,
            }
        )
        return CreatedIssue(id=issue_id, title=title, kind=IssueKind.CHILD)

    def add_dependency(self, blocked_id: str, blocking_id: str) -> None:
        self._tick("add_dependency")
        self.dependencies.append((blocked_id, blocking_id))

    def update_status(self, issue_id: str, status: str) -> None:
        self._tick("update_status")
        self.status_updates.append((issue_id, status))

    def close(self, issue_id: str) -> None:
        self._tick("close")
        self.closed.append(issue_id)

    def check_initialized(self) -> bool:
        return self.initialized

    @property
    def epics(self) -> list[dict[str, Any]]:
        return [c for c in self.created if c["kind"] == "epic"]

    @property
    def children(self) -> list[dict[str, Any]]:
        return [c for c in self.created if c["kind"] == "child"]


@pytest.fixture
def tracker():
    """Provide a fresh FakeTracker."""
    return FakeTracker()


# ==============================================================================
# Directory Fixtures
# ==============================================================================


@pytest.fixture
def project_dir(tmp_path):
    """
    Provide a temporary beads project directory.

    Creates:
    - .beads/issues.jsonl
    """
    project = tmp_path / "project"
    project.mkdir()

    beads_dir = project / ".beads"
    beads_dir.mkdir()
    (beads_dir / "issues.jsonl").write_text("")

    return project


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep user config and TM2BD_* env vars from leaking into tests."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    for name in (
        "TM2BD_TASKS_FILE",
        "TM2BD_PROJECT_DIR",
        "TM2BD_MAP_FILE",
        "TM2BD_TAG",
        "TM2BD_BD_COMMAND",
        "TM2BD_COMMAND_TIMEOUT",
        "TM2BD_CHECKPOINT",
    ):
        monkeypatch.delenv(name, raising=False)
    clear_cache()
    yield
    clear_cache()


# ==============================================================================
# Sample Data Fixtures
# ==============================================================================


def make_task(
    task_id: int,
    title: str | None = None,
    dependencies: list[int] | None = None,
    subtasks: list[Subtask] | None = None,
    **kwargs: Any,
) -> Task:
    """Build a Task with sensible defaults."""
    return Task(
        id=task_id,
        title=title or f"Task {task_id}",
        description=kwargs.pop("description", f"Description of task {task_id}"),
        dependencies=dependencies or [],
        subtasks=subtasks or [],
        **kwargs,
    )


def make_subtask(
    subtask_id: int,
    title: str | None = None,
    dependencies: list[int] | None = None,
    **kwargs: Any,
) -> Subtask:
    """Build a Subtask with sensible defaults."""
    return Subtask(
        id=subtask_id,
        title=title or f"Subtask {subtask_id}",
        description=kwargs.pop("description", f"Description of subtask {subtask_id}"),
        dependencies=dependencies or [],
        **kwargs,
    )


@pytest.fixture
def simple_task_list():
    """
    Three tasks in a chain-and-diamond shape with no subtasks.

    Task 1 has no dependencies, task 2 depends on 1, task 3 on 1 and 2.
    """
    return TaskList(
        tasks=[
            make_task(3, "Build API", dependencies=[1, 2], priority=TaskPriority.LOW),
            make_task(1, "Setup", priority=TaskPriority.HIGH),
            make_task(2, "Schema", dependencies=[1]),
        ]
    )


@pytest.fixture
def rich_task_list():
    """
    Two tasks with subtasks, a test strategy and mixed statuses.
    """
    return TaskList(
        tasks=[
            make_task(
                1,
                "Setup project",
                status=TaskStatus.DONE,
                priority=TaskPriority.HIGH,
                details="Use uv",
                test_strategy="Run the smoke tests",
                complexity=3,
                subtasks=[
                    make_subtask(2, "Add CI", dependencies=[1], status=TaskStatus.IN_PROGRESS),
                    make_subtask(1, "Init repo", status=TaskStatus.DONE),
                ],
            ),
            make_task(
                2,
                "Write docs",
                dependencies=[1],
                status=TaskStatus.DEFERRED,
                subtasks=[make_subtask(1, "Outline")],
            ),
        ]
    )


def write_tasks_file(path: Path, data: dict[str, Any]) -> Path:
    """Write a tasks.json document and return its path."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2))
    return path


@pytest.fixture
def sample_tasks_data():
    """Raw tagged tasks.json content as task-master writes it."""
    return {
        "master": {
            "tasks": [
                {
                    "id": 1,
                    "title": "Setup",
                    "description": "Scaffold",
                    "status": "pending",
                    "priority": "high",
                    "dependencies": [],
                    "subtasks": [],
                },
                {
                    "id": 2,
                    "title": "Schema",
                    "description": "Design tables",
                    "status": "in-progress",
                    "priority": "medium",
                    "dependencies": ["1"],
                    "testStrategy": "Check migrations apply",
                    "subtasks": [
                        {"id": 1, "title": "Tables", "description": "", "dependencies": []},
                        {"id": 2, "title": "Indexes", "description": "", "dependencies": [1]},
                    ],
                },
            ],
            "metadata": {"created": "2025-01-01T00:00:00Z"},
        }
    }
