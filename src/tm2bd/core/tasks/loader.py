"""
Loading task-master task files from disk.

task-master writes either a flat ``{"tasks": [...]}`` document or a tagged
one, where each tag (``master`` by default) wraps its own task list::

    {"master": {"tasks": [...], "metadata": {...}}, "feature-x": {...}}
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .models import TaskList

logger = logging.getLogger(__name__)

DEFAULT_TAG = "master"


class TaskFileError(Exception):
    """Raised when a task file cannot be read or does not match the schema."""

    pass


def select_tag(data: dict[str, Any], tag: str = DEFAULT_TAG) -> dict[str, Any]:
    """
    Pick the task list for *tag* out of a parsed task file.

    Args:
        data: Parsed JSON document
        tag: Tag name to select

    Returns:
        The dict holding the ``tasks`` key

    Raises:
        TaskFileError: If neither the tag nor a top-level task list exists
    """
    tagged = data.get(tag)
    if isinstance(tagged, dict):
        return tagged

    if "tasks" in data:
        logger.debug("No '%s' tag in task file, using top-level task list", tag)
        return data

    tags = sorted(k for k, v in data.items() if isinstance(v, dict) and "tasks" in v)
    available = ", ".join(tags) if tags else "none"
    raise TaskFileError(f"Tag '{tag}' not found in task file (available tags: {available})")


def parse_task_data(data: Any, tag: str = DEFAULT_TAG) -> TaskList:
    """
    Validate a parsed task document against the task schema.

    Raises:
        TaskFileError: If the document is not an object or fails validation
    """
    if not isinstance(data, dict):
        raise TaskFileError("Task file must contain a JSON object")

    project_data = select_tag(data, tag)

    try:
        return TaskList.model_validate(project_data)
    except ValidationError as e:
        raise TaskFileError(f"Task file does not match the task-master schema:\n{e}") from e


def load_task_file(path: Path, tag: str = DEFAULT_TAG) -> TaskList:
    """
    Read and validate a task-master ``tasks.json`` file.

    Args:
        path: Path to the task file
        tag: Tag to read when the file is tagged (default: master)

    Returns:
        Validated TaskList

    Raises:
        TaskFileError: If the file is missing, unreadable, not JSON, or
            does not match the schema
    """
    if not path.exists():
        raise TaskFileError(f"Task file not found: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise TaskFileError(f"Cannot read task file {path}: {e}") from e
    except UnicodeDecodeError as e:
        raise TaskFileError(f"Task file {path} is not valid UTF-8 text: {e}") from e

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise TaskFileError(f"Task file {path} is not valid JSON: {e}") from e

    task_list = parse_task_data(data, tag)
    logger.debug(
        "Loaded %d tasks and %d subtasks from %s",
        len(task_list.tasks),
        task_list.subtask_count,
        path,
    )
    return task_list
