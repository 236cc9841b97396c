"""
Configuration data models for tm2bd.

These models define the structure of .tm2bd.json and
~/.config/tm2bd/config.json files, with validation via Pydantic.
"""

from typing import Optional

from pydantic import BaseModel, Field


class Tm2bdConfig(BaseModel):
    """
    Top-level tm2bd configuration.

    Loaded from defaults, user config, project config, and env vars.
    Command-line options override every layer.

    Example:
        >>> config = Tm2bdConfig(tasks_file="tasks.json", tag="feature-x")
        >>> config.map_file
        'tm2bd-map.json'
    """
    tasks_file: str = Field(
        default=".taskmaster/tasks/tasks.json",
        description="Path to the task-master tasks.json file"
    )
    project_dir: str = Field(
        default=".",
        description="Beads project directory"
    )
    map_file: str = Field(
        default="tm2bd-map.json",
        description="Path of the id mapping file"
    )
    tag: str = Field(
        default="master",
        min_length=1,
        description="task-master tag to sync from a tagged tasks.json"
    )
    bd_command: str = Field(
        default="bd",
        min_length=1,
        description="Name or path of the beads CLI"
    )
    command_timeout: Optional[float] = Field(
        default=None,
        gt=0,
        description="Timeout in seconds for each bd command (none by default)"
    )
    checkpoint: bool = Field(
        default=True,
        description="Save the mapping file after every created issue"
    )
