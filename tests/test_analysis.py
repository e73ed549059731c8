"""Tests for relatedness scoring and orphan detection."""

from __future__ import annotations

import sqlite3

import pytest

from palace.db import upsertNote
from palace.graph import findCommonLinks, findOrphans, findRelatedNotes
from palace.graph.analysis import jaccard
from palace.models import OrphanType, RelatednessMethod


def test_jaccard():
    assert jaccard({"a", "b"}, {"b", "c"}) == pytest.approx(1 / 3)
    assert jaccard({"a"}, {"a"}) == 1.0
    assert jaccard(set(), set()) == 0.0


class TestFindRelatedNotes:
    def test_byLinks(self, vault: sqlite3.Connection):
        related = findRelatedNotes(vault, "projects/alpha.md", RelatednessMethod.LINKS)
        assert len(related) == 1
        assert related[0].note.path == "projects/beta.md"
        # alpha → {Docker, beta, "missing note"}, beta → {alpha, Docker}
        assert related[0].score == pytest.approx(0.25)
        assert related[0].shared_links == ["tech/Docker.md"]
        assert related[0].shared_tags is None

    def test_byTags(self, vault: sqlite3.Connection):
        related = findRelatedNotes(vault, "projects/alpha.md", "tags")
        assert [r.note.path for r in related] == ["projects/beta.md"]
        assert related[0].score == pytest.approx(0.5)
        assert related[0].shared_tags == ["project"]
        assert related[0].shared_links is None

    def test_bothSumsScores(self, vault: sqlite3.Connection):
        related = findRelatedNotes(vault, "projects/alpha.md", RelatednessMethod.BOTH)
        assert related[0].note.path == "projects/beta.md"
        assert related[0].score == pytest.approx(0.75)
        assert related[0].shared_links == ["tech/Docker.md"]
        assert related[0].shared_tags == ["project"]

    def test_symmetric(self, vault: sqlite3.Connection):
        for method in RelatednessMethod:
            ab = findRelatedNotes(vault, "projects/alpha.md", method)
            ba = findRelatedNotes(vault, "projects/beta.md", method)
            score_ab = next(r.score for r in ab if r.note.path == "projects/beta.md")
            score_ba = next(r.score for r in ba if r.note.path == "projects/alpha.md")
            assert score_ab == pytest.approx(score_ba)

    def test_linksComparedByResolvedNote(self, db: sqlite3.Connection):
        upsertNote(db, "topics/Python.md", title="Snake Language")
        upsertNote(db, "a.md", links=["Python"])
        upsertNote(db, "b.md", links=["snake language"])
        related = findRelatedNotes(db, "a.md", "links")
        assert [r.note.path for r in related] == ["b.md"]
        assert related[0].score == 1.0

    def test_orderedByScoreThenPath(self, db: sqlite3.Connection):
        upsertNote(db, "src.md", tags=["a", "b"])
        upsertNote(db, "z.md", tags=["a", "b"])
        upsertNote(db, "y.md", tags=["a"])
        upsertNote(db, "x.md", tags=["a"])
        related = findRelatedNotes(db, "src.md", "tags")
        assert [r.note.path for r in related] == ["z.md", "x.md", "y.md"]

    def test_limit(self, db: sqlite3.Connection):
        upsertNote(db, "src.md", tags=["t"])
        for i in range(5):
            upsertNote(db, f"n{i}.md", tags=["t"])
        assert len(findRelatedNotes(db, "src.md", "tags", limit=3)) == 3

    def test_excludesSelfAndUnrelated(self, vault: sqlite3.Connection):
        related = findRelatedNotes(vault, "tech/Docker.md", "both")
        paths = [r.note.path for r in related]
        assert "tech/Docker.md" not in paths
        assert paths == ["tech/kubernetes.md"]

    def test_noEvidence(self, vault: sqlite3.Connection):
        assert findRelatedNotes(vault, "inbox/orphan.md") == []

    def test_unknownNote(self, vault: sqlite3.Connection):
        assert findRelatedNotes(vault, "nope.md") == []


class TestFindOrphans:
    def _paths(self, db, orphan_type, prefix=None) -> list[str]:
        return [n.path for n in findOrphans(db, orphan_type, prefix)]

    def test_noIncoming(self, vault: sqlite3.Connection):
        assert self._paths(vault, OrphanType.NO_INCOMING) == ["inbox/deadend.md", "inbox/orphan.md"]

    def test_noOutgoing(self, vault: sqlite3.Connection):
        assert self._paths(vault, "no_outgoing") == ["inbox/orphan.md", "tech/kubernetes.md"]

    def test_isolated(self, vault: sqlite3.Connection):
        assert self._paths(vault, OrphanType.ISOLATED) == ["inbox/orphan.md"]

    def test_isolatedIsIntersection(self, vault: sqlite3.Connection):
        no_in = set(self._paths(vault, OrphanType.NO_INCOMING))
        no_out = set(self._paths(vault, OrphanType.NO_OUTGOING))
        assert set(self._paths(vault, OrphanType.ISOLATED)) == no_in & no_out

    def test_brokenLinkStillCountsAsOutgoing(self, vault: sqlite3.Connection):
        # deadend links only to a missing note
        assert "inbox/deadend.md" not in self._paths(vault, OrphanType.NO_OUTGOING)

    def test_pathPrefix(self, vault: sqlite3.Connection):
        assert self._paths(vault, OrphanType.NO_OUTGOING, "tech/") == ["tech/kubernetes.md"]
        assert self._paths(vault, OrphanType.ISOLATED, "projects/") == []

    def test_carriesMetadata(self, vault: sqlite3.Connection):
        orphan = findOrphans(vault, OrphanType.ISOLATED)[0]
        assert orphan.title == "Lonely"
        assert orphan.type == "note"


class TestFindCommonLinks:
    def test_shared(self, vault: sqlite3.Connection):
        upsertNote(vault, "c.md", links=["docker", "Elsewhere"])
        assert findCommonLinks(vault, "projects/alpha.md", "c.md") == ["docker"]

    def test_unknownNote(self, vault: sqlite3.Connection):
        assert findCommonLinks(vault, "projects/alpha.md", "nope.md") == []
