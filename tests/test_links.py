"""Tests for link resolution and link listing."""

from __future__ import annotations

import sqlite3

from palace.db import upsertNote
from palace.graph import (
    getAllLinks,
    getBrokenLinks,
    getIncomingLinks,
    getNoteMetadataByPath,
    getOutgoingLinks,
    isLinkResolved,
    resolveLinkTarget,
)


class TestResolveLinkTarget:
    def test_exactPath(self, vault: sqlite3.Connection):
        assert resolveLinkTarget(vault, "projects/alpha.md") == "projects/alpha.md"

    def test_titleCaseInsensitive(self, vault: sqlite3.Connection):
        assert resolveLinkTarget(vault, "containers") == "tech/Docker.md"

    def test_bareFilename(self, vault: sqlite3.Connection):
        assert resolveLinkTarget(vault, "kubernetes") == "tech/kubernetes.md"
        assert resolveLinkTarget(vault, "DOCKER") == "tech/Docker.md"

    def test_partialPath(self, vault: sqlite3.Connection):
        assert resolveLinkTarget(vault, "tech/kubernetes") == "tech/kubernetes.md"

    def test_suffixMustStartAtSegment(self, vault: sqlite3.Connection):
        # "ernetes" is a suffix of the filename but not a whole segment
        assert resolveLinkTarget(vault, "ernetes") is None

    def test_unresolved(self, vault: sqlite3.Connection):
        assert resolveLinkTarget(vault, "Missing Note") is None
        assert not isLinkResolved(vault, "Missing Note")
        assert isLinkResolved(vault, "beta")

    def test_titleBeatsFilename(self, db: sqlite3.Connection):
        upsertNote(db, "a/Guide.md", title="Setup")
        upsertNote(db, "b/Setup.md", title="Other")
        assert resolveLinkTarget(db, "setup") == "a/Guide.md"

    def test_exactPathBeatsTitle(self, db: sqlite3.Connection):
        upsertNote(db, "Readme", title="Index")
        upsertNote(db, "docs/index.md", title="Readme")
        assert resolveLinkTarget(db, "Readme") == "Readme"

    def test_tieGoesToSmallestPath(self, db: sqlite3.Connection):
        upsertNote(db, "z/todo.md")
        upsertNote(db, "a/todo.md")
        assert resolveLinkTarget(db, "todo") == "a/todo.md"


class TestNoteMetadata:
    def test_byPath(self, vault: sqlite3.Connection):
        note = getNoteMetadataByPath(vault, "projects/alpha.md")
        assert note is not None
        assert note.filename == "alpha.md"
        assert note.title == "Project Alpha"
        assert note.verified is True
        assert note.tags == ["project", "active"]

    def test_titleFallsBackToFilename(self, vault: sqlite3.Connection):
        assert getNoteMetadataByPath(vault, "inbox/deadend.md").title == "deadend"

    def test_missing(self, vault: sqlite3.Connection):
        assert getNoteMetadataByPath(vault, "nope.md") is None


class TestLinkListing:
    def test_outgoing(self, vault: sqlite3.Connection):
        links = getOutgoingLinks(vault, "projects/alpha.md")
        assert [(lk.target, lk.resolved, lk.target_path) for lk in links] == [
            ("Docker", True, "tech/Docker.md"),
            ("beta", True, "projects/beta.md"),
            ("Missing Note", False, None),
        ]
        assert all(lk.source == "projects/alpha.md" for lk in links)

    def test_outgoingUnknownNote(self, vault: sqlite3.Connection):
        assert getOutgoingLinks(vault, "nope.md") == []

    def test_incomingByFilenameAndTitle(self, vault: sqlite3.Connection):
        links = getIncomingLinks(vault, "tech/Docker.md")
        # alpha links [[Docker]], beta links [[Containers]]
        assert [lk.source for lk in links] == ["projects/alpha.md", "projects/beta.md"]
        assert all(lk.resolved and lk.target_path == "tech/Docker.md" for lk in links)

    def test_incomingByPath(self, vault: sqlite3.Connection):
        assert [lk.source for lk in getIncomingLinks(vault, "projects/alpha.md")] == [
            "projects/beta.md"
        ]

    def test_incomingNone(self, vault: sqlite3.Connection):
        assert getIncomingLinks(vault, "inbox/orphan.md") == []
        assert getIncomingLinks(vault, "nope.md") == []

    def test_incomingOnePerSource(self, db: sqlite3.Connection):
        upsertNote(db, "target.md", title="Target")
        upsertNote(db, "src.md", links=["target", "Target", "target.md"])
        assert [lk.source for lk in getIncomingLinks(db, "target.md")] == ["src.md"]

    def test_allLinks(self, vault: sqlite3.Connection):
        links = getAllLinks(vault, "projects/beta.md")
        assert [lk.source for lk in links["incoming"]] == ["projects/alpha.md"]
        assert [lk.target_path for lk in links["outgoing"]] == [
            "projects/alpha.md",
            "tech/Docker.md",
        ]

    def test_brokenLinks(self, vault: sqlite3.Connection):
        broken = getBrokenLinks(vault)
        assert [(b.source, b.target) for b in broken] == [
            ("inbox/deadend.md", "Nowhere"),
            ("projects/alpha.md", "Missing Note"),
        ]
        assert not any(b.resolved for b in broken)
