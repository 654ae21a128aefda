"""Dependency graph construction and validation for task lists."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence

from webtest_engine.core.errors import CyclicDependencyError, DuplicateTaskError, UnknownDependencyError
from webtest_engine.tasks.schema import Task

_UNVISITED = 0
_IN_PROGRESS = 1
_DONE = 2


@dataclass(frozen=True)
class DependencyGraph:
    """Validated view of a task list.

    ``edges`` maps each task id to the ids it depends on. ``order`` keeps the
    input order, which is also the dispatch order among equally-ready tasks.
    """

    tasks: Dict[str, Task] = field(default_factory=dict)
    edges: Dict[str, FrozenSet[str]] = field(default_factory=dict)
    order: Sequence[str] = ()

    def dependencies(self, task_id: str) -> FrozenSet[str]:
        return self.edges.get(task_id, frozenset())

    def dependents(self, task_id: str) -> List[str]:
        return [node for node in self.order if task_id in self.edges[node]]

    def __len__(self) -> int:
        return len(self.order)


def build_dependency_graph(tasks: Iterable[Task]) -> DependencyGraph:
    """Validate ``tasks`` into a :class:`DependencyGraph`.

    Raises ``DuplicateTaskError``, ``UnknownDependencyError`` or
    ``CyclicDependencyError``; all are ``ConfigError`` subclasses.
    """

    task_map: Dict[str, Task] = {}
    order: List[str] = []
    for task in tasks:
        if task.id in task_map:
            raise DuplicateTaskError(task.id)
        task_map[task.id] = task
        order.append(task.id)

    edges: Dict[str, FrozenSet[str]] = {}
    for task_id in order:
        deps = task_map[task_id].depends
        for dep in deps:
            if dep not in task_map:
                raise UnknownDependencyError(task_id, dep)
        edges[task_id] = frozenset(deps)

    _reject_cycles(order, task_map, edges)
    return DependencyGraph(tasks=task_map, edges=edges, order=tuple(order))


def _reject_cycles(order: Sequence[str], task_map: Dict[str, Task], edges: Dict[str, FrozenSet[str]]) -> None:
    # Iterative three-colour DFS so long chains do not hit the recursion limit.
    colour: Dict[str, int] = {task_id: _UNVISITED for task_id in order}
    for root in order:
        if colour[root] != _UNVISITED:
            continue
        cycle = _walk(root, task_map, colour)
        if cycle is not None:
            raise CyclicDependencyError(root, cycle)


def _walk(root: str, task_map: Dict[str, Task], colour: Dict[str, int]) -> Optional[List[str]]:
    path: List[str] = [root]
    stack = [(root, iter(task_map[root].depends))]
    colour[root] = _IN_PROGRESS
    while stack:
        node, pending = stack[-1]
        dep = next(pending, None)
        if dep is None:
            colour[node] = _DONE
            stack.pop()
            path.pop()
            continue
        state = colour[dep]
        if state == _IN_PROGRESS:
            return path[path.index(dep):] + [dep]
        if state == _UNVISITED:
            colour[dep] = _IN_PROGRESS
            path.append(dep)
            stack.append((dep, iter(task_map[dep].depends)))
    return None


__all__ = ["DependencyGraph", "build_dependency_graph"]
