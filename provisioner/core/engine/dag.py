"""
DAG utilities (pure).

Functions for step dependency validation, cycle detection, and
stable topological ordering. No I/O, no subprocess.

Graphs are given as an ordered mapping ``id → predecessor ids``;
the mapping's insertion order is the declaration order.
"""

from __future__ import annotations

import heapq
from collections.abc import Iterable, Mapping


def find_duplicate_ids(ids: Iterable[str]) -> list[str]:
    """Return ids that appear more than once, in first-repeat order."""
    seen: set[str] = set()
    dupes: list[str] = []
    for sid in ids:
        if sid in seen and sid not in dupes:
            dupes.append(sid)
        seen.add(sid)
    return dupes


def find_unknown_refs(graph: Mapping[str, Iterable[str]]) -> list[tuple[str, str]]:
    """Return ``(step_id, missing_dep)`` pairs for dangling references."""
    missing: list[tuple[str, str]] = []
    for sid, deps in graph.items():
        for dep in sorted(deps):
            if dep not in graph:
                missing.append((sid, dep))
    return missing


def stable_topological_order(
    graph: Mapping[str, Iterable[str]],
) -> tuple[list[str], list[str]]:
    """Order ids so every step follows its predecessors.

    Kahn's algorithm with a min-heap keyed on declaration index: among
    steps that are ready at the same time, the one declared first runs
    first. A graph that is already in a valid order comes back unchanged.

    Args:
        graph: Ordered mapping of step id to predecessor ids. All
            references must resolve (see ``find_unknown_refs``).

    Returns:
        ``(order, blocked)``. ``blocked`` lists the ids that could not
        be placed because they sit on or behind a cycle (empty = acyclic).
    """
    index = {sid: i for i, sid in enumerate(graph)}
    in_degree: dict[str, int] = {sid: 0 for sid in graph}
    # Adjacency: dep → list of steps that depend on it
    successors: dict[str, list[str]] = {sid: [] for sid in graph}
    for sid, deps in graph.items():
        for dep in set(deps):
            in_degree[sid] += 1
            successors[dep].append(sid)

    ready = [index[sid] for sid, deg in in_degree.items() if deg == 0]
    heapq.heapify(ready)
    ids = list(graph)
    order: list[str] = []

    while ready:
        node = ids[heapq.heappop(ready)]
        order.append(node)
        for successor in successors[node]:
            in_degree[successor] -= 1
            if in_degree[successor] == 0:
                heapq.heappush(ready, index[successor])

    blocked = [sid for sid in graph if in_degree[sid] > 0]
    return order, blocked


def find_cycle(graph: Mapping[str, Iterable[str]], candidates: Iterable[str]) -> list[str]:
    """Extract one concrete cycle among ``candidates`` for error messages.

    Walks predecessor edges from the first candidate until a node
    repeats. Every blocked node either sits on a cycle or depends on
    one, so the walk always terminates on a cycle.

    Returns:
        The cycle as a list of ids read as "depends on", closed (first id
        repeated at the end).
    """
    pool = list(candidates)
    if not pool:
        return []
    allowed = set(pool)
    path: list[str] = []
    position: dict[str, int] = {}
    node = pool[0]
    while node not in position:
        position[node] = len(path)
        path.append(node)
        node = next(d for d in sorted(graph[node]) if d in allowed)
    cycle = path[position[node]:]
    return [*cycle, cycle[0]]


def transitive_predecessors(
    graph: Mapping[str, Iterable[str]],
    roots: Iterable[str],
) -> set[str]:
    """All ids reachable from ``roots`` along predecessor edges, roots included."""
    seen: set[str] = set()
    stack = list(roots)
    while stack:
        sid = stack.pop()
        if sid in seen:
            continue
        seen.add(sid)
        stack.extend(graph.get(sid, ()))
    return seen
