"""
Task-master → beads id mapping.

Example:
    >>> from tm2bd.core.mapping import MappingStore
    >>> store = MappingStore.load(Path("tm2bd-map.json"))
    >>> store.get_epic_id(1)
    'bd-a1'
"""

from .models import MAPPING_FILE_VERSION, MappingFile, MappingStats, SubtaskMapping, TaskMapping
from .store import (
    MappingError,
    MappingLoadError,
    MappingSaveError,
    MappingStore,
    MissingMappingError,
)

__all__ = [
    "MAPPING_FILE_VERSION",
    "MappingFile",
    "MappingStats",
    "TaskMapping",
    "SubtaskMapping",
    "MappingStore",
    "MappingError",
    "MappingLoadError",
    "MappingSaveError",
    "MissingMappingError",
]
