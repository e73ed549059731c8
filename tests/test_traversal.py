"""Tests for breadth-first graph traversal."""

from __future__ import annotations

import sqlite3

from palace.db import upsertNote
from palace.graph import getGraphNode, hasPath, traverseGraph
from palace.models import Direction


def _depths(results) -> dict[str, int]:
    return {r.note.path: r.depth for r in results}


class TestTraverseGraph:
    def test_outgoingDepthOne(self, vault: sqlite3.Connection):
        results = traverseGraph(vault, "projects/alpha.md", Direction.OUTGOING, 1)
        assert [r.note.path for r in results] == ["tech/Docker.md", "projects/beta.md"]
        assert all(r.depth == 1 for r in results)
        assert results[0].path_trail == ["projects/alpha.md", "tech/Docker.md"]

    def test_outgoingDepthTwo(self, vault: sqlite3.Connection):
        results = traverseGraph(vault, "projects/alpha.md", "outgoing", 2)
        assert _depths(results) == {
            "tech/Docker.md": 1,
            "projects/beta.md": 1,
            "tech/kubernetes.md": 2,
        }
        k8s = next(r for r in results if r.note.path == "tech/kubernetes.md")
        assert k8s.path_trail == ["projects/alpha.md", "tech/Docker.md", "tech/kubernetes.md"]
        assert k8s.note.title == "K8s"

    def test_cycleTerminatesAndExcludesStart(self, vault: sqlite3.Connection):
        # alpha ⇄ beta is a cycle
        results = traverseGraph(vault, "projects/alpha.md", Direction.BOTH, 5)
        paths = [r.note.path for r in results]
        assert "projects/alpha.md" not in paths
        assert len(paths) == len(set(paths))

    def test_incoming(self, vault: sqlite3.Connection):
        results = traverseGraph(vault, "tech/kubernetes.md", Direction.INCOMING, 3)
        assert _depths(results) == {
            "tech/Docker.md": 1,
            "projects/alpha.md": 2,
            "projects/beta.md": 2,
        }

    def test_bothDirections(self, vault: sqlite3.Connection):
        results = traverseGraph(vault, "tech/Docker.md", Direction.BOTH, 1)
        assert [r.note.path for r in results] == [
            "tech/kubernetes.md",
            "projects/alpha.md",
            "projects/beta.md",
        ]

    def test_shortestDepthWins(self, db: sqlite3.Connection):
        upsertNote(db, "a.md", links=["b", "c"])
        upsertNote(db, "b.md", links=["c"])
        upsertNote(db, "c.md")
        results = traverseGraph(db, "a.md", Direction.OUTGOING, 3)
        assert _depths(results) == {"b.md": 1, "c.md": 1}
        assert next(r for r in results if r.note.path == "c.md").path_trail == ["a.md", "c.md"]

    def test_unresolvedLinksSkipped(self, vault: sqlite3.Connection):
        results = traverseGraph(vault, "inbox/deadend.md", Direction.OUTGOING, 2)
        assert results == []

    def test_unknownStart(self, vault: sqlite3.Connection):
        assert traverseGraph(vault, "nope.md") == []


class TestHasPath:
    def test_reachable(self, vault: sqlite3.Connection):
        assert hasPath(vault, "projects/beta.md", "tech/kubernetes.md")

    def test_notReachableAgainstLinks(self, vault: sqlite3.Connection):
        assert not hasPath(vault, "tech/kubernetes.md", "projects/alpha.md")

    def test_depthBound(self, vault: sqlite3.Connection):
        assert not hasPath(vault, "projects/alpha.md", "tech/kubernetes.md", max_depth=1)
        assert hasPath(vault, "projects/alpha.md", "tech/kubernetes.md", max_depth=2)


class TestGraphNode:
    def test_counts(self, vault: sqlite3.Connection):
        node = getGraphNode(vault, "tech/Docker.md")
        assert node is not None
        assert node.title == "Containers"
        assert node.incoming_count == 2
        assert node.outgoing_count == 1

    def test_missing(self, vault: sqlite3.Connection):
        assert getGraphNode(vault, "nope.md") is None
