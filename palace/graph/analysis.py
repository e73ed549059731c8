"""Relatedness scoring, orphan detection and common-link lookup."""

from __future__ import annotations

import sqlite3
from collections.abc import Callable
from dataclasses import dataclass, field

from palace.db import NOTE_COLUMNS, escapeLike, getNoteRow, linkTargets, readSnapshot
from palace.graph.links import LINK_MATCHES_NOTE, cachedResolver, getNotesByPaths, notesFromRows
from palace.models import NoteMetadata, OrphanType, RelatednessMethod, RelatedNote

_HAS_INCOMING = f"EXISTS (SELECT 1 FROM links l WHERE {LINK_MATCHES_NOTE})"
_HAS_OUTGOING = "EXISTS (SELECT 1 FROM links l WHERE l.source_id = n.id)"

_ORPHAN_CONDITIONS: dict[OrphanType, list[str]] = {
    OrphanType.NO_INCOMING: [f"NOT {_HAS_INCOMING}"],
    OrphanType.NO_OUTGOING: [f"NOT {_HAS_OUTGOING}"],
    OrphanType.ISOLATED: [f"NOT {_HAS_INCOMING}", f"NOT {_HAS_OUTGOING}"],
}


def jaccard(a: set[str], b: set[str]) -> float:
    union = a | b
    return len(a & b) / len(union) if union else 0.0


@dataclass
class _Candidate:
    score: float = 0.0
    shared_links: list[str] | None = None
    shared_tags: list[str] | None = None


@dataclass
class _Sets:
    """Per-note sets for one relatedness method, keyed by note path."""

    mine: set[str]
    others: dict[str, set[str]] = field(default_factory=dict)


def _linkSets(db: sqlite3.Connection, note_id: int) -> _Sets:
    resolve = cachedResolver(db)

    def key(target: str) -> str:
        return resolve(target) or target.lower()

    sets = _Sets(mine={key(t) for t in linkTargets(db, note_id)})
    if not sets.mine:
        return sets
    rows = db.execute(
        """SELECT n.path, l.target_path FROM links l JOIN notes n ON n.id = l.source_id
           WHERE n.id != ? ORDER BY n.path, l.id""",
        (note_id,),
    ).fetchall()
    for row in rows:
        sets.others.setdefault(row["path"], set()).add(key(row["target_path"]))
    return sets


def _tagSets(db: sqlite3.Connection, note_id: int) -> _Sets:
    mine = db.execute("SELECT tag FROM note_tags WHERE note_id = ?", (note_id,)).fetchall()
    sets = _Sets(mine={r["tag"] for r in mine})
    if not sets.mine:
        return sets
    rows = db.execute(
        """SELECT n.path, nt.tag FROM note_tags nt JOIN notes n ON n.id = nt.note_id
           WHERE n.id != ? ORDER BY n.path""",
        (note_id,),
    ).fetchall()
    for row in rows:
        sets.others.setdefault(row["path"], set()).add(row["tag"])
    return sets


_METHOD_SETS: dict[str, Callable[[sqlite3.Connection, int], _Sets]] = {
    "shared_links": _linkSets,
    "shared_tags": _tagSets,
}


def findRelatedNotes(
    db: sqlite3.Connection,
    path: str,
    method: RelatednessMethod | str = RelatednessMethod.BOTH,
    limit: int = 10,
) -> list[RelatedNote]:
    """Rank other notes by Jaccard similarity of link targets and/or tags.

    With method "both" the two scores are summed per note. Only notes sharing
    at least one link target or tag are returned. Unknown note → [].
    """
    method = RelatednessMethod(method)
    evidence = {
        RelatednessMethod.LINKS: ["shared_links"],
        RelatednessMethod.TAGS: ["shared_tags"],
        RelatednessMethod.BOTH: ["shared_links", "shared_tags"],
    }[method]

    with readSnapshot(db):
        row = getNoteRow(db, path)
        if row is None:
            return []

        candidates: dict[str, _Candidate] = {}
        for kind in evidence:
            sets = _METHOD_SETS[kind](db, row["id"])
            for other, theirs in sets.others.items():
                shared = sets.mine & theirs
                if not shared:
                    continue
                cand = candidates.setdefault(other, _Candidate())
                cand.score += jaccard(sets.mine, theirs)
                setattr(cand, kind, sorted(shared))

        ranked = sorted(candidates.items(), key=lambda kv: (-kv[1].score, kv[0]))[:limit]
        notes = getNotesByPaths(db, [p for p, _ in ranked])
        return [
            RelatedNote(
                note=notes[p],
                score=c.score,
                shared_links=c.shared_links,
                shared_tags=c.shared_tags,
            )
            for p, c in ranked
        ]


def findOrphans(
    db: sqlite3.Connection,
    orphan_type: OrphanType | str = OrphanType.ISOLATED,
    path_prefix: str | None = None,
) -> list[NoteMetadata]:
    """Notes nothing links to, notes that link nowhere, or both; ordered by path."""
    conditions = list(_ORPHAN_CONDITIONS[OrphanType(orphan_type)])
    params: list[str] = []
    if path_prefix:
        conditions.insert(0, "n.path LIKE ? ESCAPE '\\'")
        params.append(f"{escapeLike(path_prefix)}%")

    with readSnapshot(db):
        rows = db.execute(
            f"""SELECT {NOTE_COLUMNS} FROM notes n
                WHERE {' AND '.join(conditions)}
                ORDER BY n.path""",
            params,
        ).fetchall()
        return notesFromRows(db, rows)


def findCommonLinks(db: sqlite3.Connection, path1: str, path2: str) -> list[str]:
    """Raw targets of `path2` that `path1` also links to (case-insensitive)."""
    with readSnapshot(db):
        row1 = getNoteRow(db, path1)
        row2 = getNoteRow(db, path2)
        if row1 is None or row2 is None:
            return []
        targets1 = {t.lower() for t in linkTargets(db, row1["id"])}
        return [t for t in linkTargets(db, row2["id"]) if t.lower() in targets1]
