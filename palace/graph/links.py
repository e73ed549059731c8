"""Wiki-link resolution and link listing.

A raw target resolves to a note by the first rule that matches:

1. exact, case-sensitive path
2. case-insensitive title
3. case-insensitive filename without extension, as the whole path or as a
   suffix after a "/" (covers bare filenames and partial paths)

Ties inside a rule go to the lexicographically smallest path.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable, Iterable
from pathlib import PurePosixPath

from palace.db import NOTE_COLUMNS, NOTE_EXTENSION, getNoteRow, linkTargets, readSnapshot, tagsByNote
from palace.models import GraphLink, NoteMetadata

logger = logging.getLogger("palace")

_EXT_LEN = len(NOTE_EXTENSION)

# Rule 3 for a single target bound twice as ?
_FILENAME_MATCH = f"""LOWER(path) = LOWER(?) || '{NOTE_EXTENSION}'
    OR SUBSTR(LOWER(path), -(LENGTH(?) + {_EXT_LEN + 1})) = '/' || LOWER(?) || '{NOTE_EXTENSION}'"""

# A stored link l points at note n by path (with or without extension),
# title, or filename suffix, all case-insensitive
LINK_MATCHES_NOTE = f"""(
    LOWER(l.target_path) = LOWER(n.path)
    OR LOWER(l.target_path) = LOWER(n.title)
    OR LOWER(l.target_path) || '{NOTE_EXTENSION}' = LOWER(n.path)
    OR SUBSTR(LOWER(n.path), -(LENGTH(l.target_path) + {_EXT_LEN + 1}))
       = '/' || LOWER(l.target_path) || '{NOTE_EXTENSION}'
)"""


def resolveLinkTarget(db: sqlite3.Connection, target: str) -> str | None:
    """Resolve a raw link target to a note path, or None."""
    row = db.execute("SELECT path FROM notes WHERE path = ?", (target,)).fetchone()
    if row:
        return row["path"]

    row = db.execute(
        "SELECT path FROM notes WHERE LOWER(title) = LOWER(?) ORDER BY path LIMIT 1", (target,)
    ).fetchone()
    if row:
        return row["path"]

    row = db.execute(
        f"SELECT path FROM notes WHERE {_FILENAME_MATCH} ORDER BY path LIMIT 1",
        (target, target, target),
    ).fetchone()
    return row["path"] if row else None


def isLinkResolved(db: sqlite3.Connection, target: str) -> bool:
    return resolveLinkTarget(db, target) is not None


def cachedResolver(db: sqlite3.Connection) -> Callable[[str], str | None]:
    """Per-call memo of resolveLinkTarget; targets repeat across a vault."""
    cache: dict[str, str | None] = {}

    def resolve(target: str) -> str | None:
        if target not in cache:
            cache[target] = resolveLinkTarget(db, target)
        return cache[target]

    return resolve


# -- Note metadata --


def rowToNoteMetadata(row: sqlite3.Row, tags: list[str] | None = None) -> NoteMetadata:
    path = row["path"]
    name = PurePosixPath(path).name
    return NoteMetadata(
        path=path,
        filename=name,
        title=row["title"] or name.removesuffix(NOTE_EXTENSION),
        type=row["type"],
        created=row["created"],
        modified=row["modified"],
        source=row["source"],
        confidence=row["confidence"],
        verified=bool(row["verified"]) if row["verified"] is not None else None,
        tags=tags or [],
    )


def notesFromRows(db: sqlite3.Connection, rows: Iterable[sqlite3.Row]) -> list[NoteMetadata]:
    """Build NoteMetadata for rows selected with NOTE_COLUMNS, fetching tags in one query."""
    rows = list(rows)
    tags = tagsByNote(db, [r["id"] for r in rows])
    return [rowToNoteMetadata(r, tags.get(r["id"])) for r in rows]


def getNoteMetadataByPath(db: sqlite3.Connection, path: str) -> NoteMetadata | None:
    row = getNoteRow(db, path)
    if row is None:
        return None
    return notesFromRows(db, [row])[0]


def getNotesByPaths(db: sqlite3.Connection, paths: Iterable[str]) -> dict[str, NoteMetadata]:
    paths = list(dict.fromkeys(paths))
    if not paths:
        return {}
    placeholders = ",".join("?" for _ in paths)
    rows = db.execute(
        f"SELECT {NOTE_COLUMNS} FROM notes n WHERE n.path IN ({placeholders})", paths
    ).fetchall()
    return {note.path: note for note in notesFromRows(db, rows)}


# -- Links --


def getOutgoingLinks(db: sqlite3.Connection, path: str) -> list[GraphLink]:
    """Links stored on a note, each with its resolution. Unknown note → []."""
    with readSnapshot(db):
        row = getNoteRow(db, path)
        if row is None:
            logger.debug("Note not found in index: %s", path)
            return []
        resolve = cachedResolver(db)
        links = []
        for target in linkTargets(db, row["id"]):
            resolved = resolve(target)
            links.append(
                GraphLink(
                    source=path,
                    target=target,
                    resolved=resolved is not None,
                    target_path=resolved,
                )
            )
        return links


def incomingSources(db: sqlite3.Connection, path: str) -> list[str]:
    """Paths of notes holding a link that points at `path`."""
    rows = db.execute(
        f"""SELECT DISTINCT src.path AS source_path
            FROM notes n
            JOIN links l ON {LINK_MATCHES_NOTE}
            JOIN notes src ON src.id = l.source_id
            WHERE n.path = ?
            ORDER BY src.path""",
        (path,),
    ).fetchall()
    return [r["source_path"] for r in rows]


def getIncomingLinks(db: sqlite3.Connection, path: str) -> list[GraphLink]:
    """Backlinks to a note, one per linking note. Unknown note → []."""
    with readSnapshot(db):
        return [
            GraphLink(source=source, target=path, resolved=True, target_path=path)
            for source in incomingSources(db, path)
        ]


def getAllLinks(db: sqlite3.Connection, path: str) -> dict[str, list[GraphLink]]:
    with readSnapshot(db):
        return {
            "incoming": getIncomingLinks(db, path),
            "outgoing": getOutgoingLinks(db, path),
        }


def getBrokenLinks(db: sqlite3.Connection) -> list[GraphLink]:
    """Every stored link whose target does not resolve."""
    with readSnapshot(db):
        rows = db.execute(
            """SELECT n.path AS source_path, l.target_path
               FROM links l JOIN notes n ON n.id = l.source_id
               ORDER BY n.path, l.id"""
        ).fetchall()
        resolve = cachedResolver(db)
        return [
            GraphLink(source=r["source_path"], target=r["target_path"], resolved=False)
            for r in rows
            if resolve(r["target_path"]) is None
        ]
