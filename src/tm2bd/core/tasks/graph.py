"""
Dependency ordering for task-master tasks.

Resolves a list of nodes (tasks, or the subtasks of one task) into a
deterministic tiered ordering. A node's tier is one more than the highest
tier among its dependencies, or 0 when it has none. The ordering is sorted
by ``(tier, id)`` so the same input always produces the same output,
whatever order the nodes arrive in.

Example::

    ordered = resolve_tiers(task_list.tasks)
    for entry in ordered:
        print(entry.tier, entry.node.id)
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Generic, Protocol, TypeVar


class GraphNode(Protocol):
    """Anything with an integer id and a list of dependency ids."""

    @property
    def id(self) -> int: ...

    @property
    def dependencies(self) -> Sequence[int]: ...


N = TypeVar("N", bound=GraphNode)


class DependencyGraphError(Exception):
    """Base exception for dependency graph errors."""

    pass


class CircularDependencyError(DependencyGraphError):
    """Raised when the dependency graph contains a cycle."""

    def __init__(self, cycle: list[int]):
        self.cycle = cycle
        path = " → ".join(str(node_id) for node_id in cycle)
        super().__init__(f"Circular dependency detected: {path}")


class MissingDependencyError(DependencyGraphError):
    """Raised when a dependency refers to a node that does not exist."""

    def __init__(self, missing_id: int, referenced_by: int | None = None):
        self.missing_id = missing_id
        self.referenced_by = referenced_by
        message = f"Task {missing_id} referenced but not found"
        if referenced_by is not None:
            message += f" (dependency of task {referenced_by})"
        super().__init__(message)


@dataclass(frozen=True)
class TieredNode(Generic[N]):
    """A node paired with its tier in the dependency ordering."""

    node: N
    tier: int


def resolve_tiers(nodes: Sequence[N]) -> list[TieredNode[N]]:
    """
    Assign a tier to every node and return them in dependency order.

    Uses a depth-first traversal with three states per node: unvisited,
    on the current path, and finalized. Finalized tiers are memoized so no
    subgraph is walked twice. Disconnected components are handled by
    starting a traversal from every node that is still unvisited.

    Args:
        nodes: Nodes exposing ``id`` and ``dependencies``

    Returns:
        One TieredNode per input node, sorted by tier then id

    Raises:
        CircularDependencyError: If any node depends on itself, directly
            or transitively. The error carries the offending cycle.
        MissingDependencyError: If a dependency id has no matching node
    """
    by_id: dict[int, N] = {node.id: node for node in nodes}
    tiers: dict[int, int] = {}
    path: list[int] = []
    on_path: set[int] = set()

    def visit(node_id: int, referenced_by: int | None) -> int:
        if node_id in tiers:
            return tiers[node_id]

        if node_id in on_path:
            start = path.index(node_id)
            raise CircularDependencyError(path[start:] + [node_id])

        node = by_id.get(node_id)
        if node is None:
            raise MissingDependencyError(node_id, referenced_by)

        on_path.add(node_id)
        path.append(node_id)

        max_dep_tier = -1
        for dep_id in node.dependencies:
            max_dep_tier = max(max_dep_tier, visit(dep_id, node_id))

        path.pop()
        on_path.discard(node_id)

        tiers[node_id] = max_dep_tier + 1
        return tiers[node_id]

    for node in nodes:
        if node.id not in tiers:
            visit(node.id, None)

    result = [TieredNode(node=node, tier=tiers[node.id]) for node in nodes]
    result.sort(key=lambda entry: (entry.tier, entry.node.id))
    return result


def find_dependency_cycles(nodes: Sequence[GraphNode]) -> list[list[int]]:
    """
    Collect the cycles reachable by a DFS over the graph.

    Unlike resolve_tiers this does not stop at the first problem, so it
    can report several cycles at once. Dangling references are ignored
    here; see find_missing_dependencies.

    Returns:
        Each cycle as a path that starts and ends with the same id
    """
    adjacency: dict[int, Sequence[int]] = {node.id: node.dependencies for node in nodes}
    visited: set[int] = set()
    visiting: set[int] = set()
    cycles: list[list[int]] = []

    def dfs(node_id: int, path: list[int]) -> None:
        if node_id in visiting:
            start = path.index(node_id)
            cycles.append(path[start:] + [node_id])
            return
        if node_id in visited or node_id not in adjacency:
            return

        visiting.add(node_id)
        path.append(node_id)
        for dep_id in adjacency[node_id]:
            dfs(dep_id, path)
        path.pop()
        visiting.discard(node_id)
        visited.add(node_id)

    for node in nodes:
        if node.id not in visited:
            dfs(node.id, [])

    return cycles


def find_missing_dependencies(nodes: Sequence[GraphNode]) -> list[str]:
    """Describe every dependency that points at an id not present in *nodes*."""
    valid_ids = {node.id for node in nodes}
    errors: list[str] = []
    for node in nodes:
        for dep_id in node.dependencies:
            if dep_id not in valid_ids:
                errors.append(f"Task {node.id} depends on non-existent task {dep_id}")
    return errors
