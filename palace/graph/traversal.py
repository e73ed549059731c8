"""Breadth-first traversal over the resolved link graph."""

from __future__ import annotations

import sqlite3
from collections import deque
from collections.abc import Callable

from palace.db import getNoteRow, linkTargets, readSnapshot
from palace.graph.links import (
    cachedResolver,
    getNotesByPaths,
    incomingSources,
    rowToNoteMetadata,
)
from palace.models import Direction, GraphNode, TraversalResult


def getGraphNode(db: sqlite3.Connection, path: str) -> GraphNode | None:
    """Note with its backlink and outgoing link counts, or None if not indexed."""
    with readSnapshot(db):
        row = getNoteRow(db, path)
        if row is None:
            return None
        return GraphNode(
            path=row["path"],
            title=rowToNoteMetadata(row).title,
            incoming_count=len(incomingSources(db, path)),
            outgoing_count=len(linkTargets(db, row["id"])),
        )


def _trail(parents: dict[str, str | None], path: str) -> list[str]:
    trail = [path]
    while (parent := parents[trail[-1]]) is not None:
        trail.append(parent)
    trail.reverse()
    return trail


def traverseGraph(
    db: sqlite3.Connection,
    start: str,
    direction: Direction | str = Direction.BOTH,
    max_depth: int = 1,
) -> list[TraversalResult]:
    """BFS from `start`; every reachable note is emitted once, at its shortest depth.

    Notes are marked visited when discovered, so cycles terminate. Trails are
    rebuilt from parent pointers for emitted notes only. Callers bound max_depth.
    """
    direction = Direction(direction)
    with readSnapshot(db):
        root = getNoteRow(db, start)
        if root is None:
            return []

        resolve = cachedResolver(db)
        parents: dict[str, str | None] = {start: None}
        depths: dict[str, int] = {}
        order: list[str] = []
        queue: deque[tuple[str, int]] = deque([(start, 0)])

        while queue:
            current, depth = queue.popleft()
            for neighbor in _neighbors(db, current, direction, resolve):
                if neighbor in parents:
                    continue
                parents[neighbor] = current
                depths[neighbor] = depth + 1
                order.append(neighbor)
                if depth + 1 < max_depth:
                    queue.append((neighbor, depth + 1))

        notes = getNotesByPaths(db, order)
        return [
            TraversalResult(depth=depths[path], path_trail=_trail(parents, path), note=notes[path])
            for path in order
            if path in notes
        ]


def _neighbors(
    db: sqlite3.Connection,
    path: str,
    direction: Direction,
    resolve: Callable[[str], str | None],
) -> list[str]:
    neighbors: list[str] = []
    if direction in (Direction.OUTGOING, Direction.BOTH):
        row = getNoteRow(db, path)
        if row is not None:
            for target in linkTargets(db, row["id"]):
                resolved = resolve(target)
                if resolved is not None:
                    neighbors.append(resolved)
    if direction in (Direction.INCOMING, Direction.BOTH):
        neighbors.extend(incomingSources(db, path))
    return neighbors


def hasPath(db: sqlite3.Connection, from_path: str, to_path: str, max_depth: int = 5) -> bool:
    """True if `to_path` is reachable from `from_path` following outgoing links."""
    results = traverseGraph(db, from_path, Direction.OUTGOING, max_depth)
    return any(r.note.path == to_path for r in results)
