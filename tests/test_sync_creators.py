"""
Tests for epic, child and test issue creation.
"""

import pytest

from conftest import make_subtask, make_task
from tm2bd.core.mapping import MappingStore, MissingMappingError
from tm2bd.core.sync.creators import (
    create_all_children,
    create_all_test_children,
    create_children,
    create_epic,
    create_epics,
    create_test_child,
    format_child_description,
    format_epic_description,
    format_test_description,
    map_priority,
)
from tm2bd.core.sync.errors import ExternalCallError
from tm2bd.core.tasks.models import TaskPriority, TaskStatus

# ==============================================================================
# Formatting
# ==============================================================================


class TestFormatting:
    """Tests for priority mapping and description formatting."""

    def test_map_priority(self):
        assert map_priority(TaskPriority.HIGH) == 0
        assert map_priority(TaskPriority.MEDIUM) == 1
        assert map_priority("low") == 2

    def test_map_priority_rejects_unknown(self):
        with pytest.raises(ValueError):
            map_priority("urgent")

    def test_epic_description_full(self):
        task = make_task(
            7,
            description="Build it",
            details="Use FastAPI",
            test_strategy="Hit the endpoints",
            complexity=6,
            status=TaskStatus.IN_PROGRESS,
        )
        assert format_epic_description(task) == (
            "## Description\n\nBuild it\n\n"
            "## Implementation Details\n\nUse FastAPI\n\n"
            "## Test Strategy\n\nHit the endpoints\n\n"
            "## Metadata\n\n"
            "- **Task-Master ID:** 7\n"
            "- **Complexity:** 6/10\n"
            "- **Original Status:** in-progress"
        )

    def test_epic_description_minimal(self):
        task = make_task(1, description="Scaffold")
        assert format_epic_description(task) == (
            "## Description\n\nScaffold\n\n"
            "## Metadata\n\n"
            "- **Task-Master ID:** 1\n"
            "- **Original Status:** pending"
        )

    def test_child_description(self):
        assert format_child_description(make_subtask(1, description="Do it")) == "Do it"
        sub = make_subtask(1, description="Do it", details="Carefully")
        assert format_child_description(sub) == "Do it\n\n## Implementation Details\nCarefully"

    def test_test_description(self):
        assert format_test_description("Run pytest") == "## Test Strategy\nRun pytest"


# ==============================================================================
# Epics
# ==============================================================================


class TestCreateEpics:
    """Tests for epic creation."""

    def test_create_epic_registers_mapping(self, tracker):
        store = MappingStore()
        epic_id = create_epic(make_task(1, "Setup", priority=TaskPriority.HIGH), tracker, store)

        assert epic_id == "bd-1"
        assert store.get_epic_id(1) == "bd-1"
        assert tracker.epics[0]["title"] == "Setup"
        assert tracker.epics[0]["priority"] == 0

    def test_create_epics_in_given_order(self, tracker):
        store = MappingStore()
        progress = []
        count = create_epics(
            [make_task(2), make_task(1)],
            tracker,
            store,
            on_progress=lambda cur, tot: progress.append((cur, tot)),
        )

        assert count == 2
        assert [e["title"] for e in tracker.epics] == ["Task 2", "Task 1"]
        assert progress == [(1, 2), (2, 2)]

    def test_skips_already_mapped(self, tracker):
        store = MappingStore()
        store.add_epic(1, "bd-old")
        count = create_epics([make_task(1), make_task(2)], tracker, store)

        assert count == 1
        assert store.get_epic_id(1) == "bd-old"
        assert [e["title"] for e in tracker.epics] == ["Task 2"]

    def test_checkpoint_after_each_creation(self, tracker):
        calls = []
        create_epics(
            [make_task(1), make_task(2)],
            tracker,
            MappingStore(),
            checkpoint=lambda: calls.append("saved"),
        )
        assert calls == ["saved", "saved"]

    def test_failure_wrapped_and_earlier_mappings_kept(self, tracker):
        store = MappingStore()
        tracker.fail_on = ("create_epic", 2)

        with pytest.raises(ExternalCallError) as exc_info:
            create_epics([make_task(1), make_task(2, "Schema")], tracker, store)

        assert exc_info.value.operation == "create epic"
        assert "task 2 ('Schema')" in str(exc_info.value)
        assert store.get_epic_id(1) == "bd-1"
        assert store.get_epic_id(2) is None


# ==============================================================================
# Children
# ==============================================================================


class TestCreateChildren:
    """Tests for child issue creation."""

    def test_children_in_ascending_id_order(self, tracker):
        store = MappingStore()
        store.add_epic(1, "bd-e")
        task = make_task(1, subtasks=[make_subtask(3), make_subtask(1), make_subtask(2)])

        ids = create_children(task, "bd-e", tracker, store)

        assert ids == ["bd-1", "bd-2", "bd-3"]
        assert [c["title"] for c in tracker.children] == ["Subtask 1", "Subtask 2", "Subtask 3"]
        assert all(c["parent"] == "bd-e" for c in tracker.children)
        assert store.get_subtask_id(1, 3) == "bd-3"

    def test_create_all_children_skips_tasks_without_subtasks(self, tracker):
        """Tasks with no subtasks need no epic mapping at this stage."""
        store = MappingStore()
        store.add_epic(2, "bd-e")
        tasks = [make_task(1), make_task(2, subtasks=[make_subtask(1)])]

        assert create_all_children(tasks, tracker, store) == 1

    def test_create_all_children_requires_epic(self, tracker):
        with pytest.raises(MissingMappingError, match="No epic mapping found for task 1"):
            create_all_children(
                [make_task(1, subtasks=[make_subtask(1)])], tracker, MappingStore()
            )

    def test_create_all_children_progress_and_resume(self, tracker):
        store = MappingStore()
        store.add_epic(1, "bd-e")
        store.add_subtask(1, 1, "bd-old")
        task = make_task(1, subtasks=[make_subtask(1), make_subtask(2)])
        progress = []

        count = create_all_children(
            [task], tracker, store, on_progress=lambda c, t: progress.append((c, t))
        )

        assert count == 1
        assert progress == [(1, 1)]
        assert [c["title"] for c in tracker.children] == ["Subtask 2"]

    def test_child_failure_wrapped(self, tracker):
        store = MappingStore()
        store.add_epic(1, "bd-e")
        tracker.fail_on = ("create_child", 1)
        with pytest.raises(ExternalCallError, match="subtask 1.1"):
            create_all_children([make_task(1, subtasks=[make_subtask(1)])], tracker, store)


# ==============================================================================
# Test issues
# ==============================================================================


class TestCreateTestIssues:
    """Tests for test issue creation."""

    def test_create_test_child(self, tracker):
        store = MappingStore()
        store.add_epic(1, "bd-e")
        task = make_task(1, "Setup", test_strategy="Run it")

        issue_id = create_test_child(task, "bd-e", tracker, store)

        assert issue_id == "bd-1"
        assert tracker.children[0]["title"] == "Test: Setup"
        assert tracker.children[0]["description"] == "## Test Strategy\nRun it"
        assert tracker.children[0]["parent"] == "bd-e"
        assert store.get_test_issue_id(1) == "bd-1"

    def test_no_strategy_no_issue(self, tracker):
        store = MappingStore()
        store.add_epic(1, "bd-e")
        assert create_test_child(make_task(1, test_strategy="  "), "bd-e", tracker, store) is None
        assert tracker.created == []

    def test_create_all_test_children(self, tracker):
        store = MappingStore()
        for task_id in (1, 2, 3):
            store.add_epic(task_id, f"bd-e{task_id}")
        store.set_test_issue_id(3, "bd-old")
        tasks = [
            make_task(1, test_strategy="Check 1"),
            make_task(2),
            make_task(3, test_strategy="Check 3"),
        ]

        assert create_all_test_children(tasks, tracker, store) == 1
        assert [c["parent"] for c in tracker.children] == ["bd-e1"]
