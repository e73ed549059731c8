"""SQLite index schema, connection setup and row-level primitives."""

from __future__ import annotations

import hashlib
import logging
import sqlite3
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path

from palace.config import PalaceConfig

SCHEMA_VERSION = 1
NOTE_EXTENSION = ".md"
# Metadata columns selected wherever a NoteMetadata is built
NOTE_COLUMNS = "n.id, n.path, n.title, n.type, n.created, n.modified, n.source, n.confidence, n.verified"
logger = logging.getLogger("palace")


def connect(config: PalaceConfig, *, check_same_thread: bool = True) -> sqlite3.Connection:
    """Open the index DB and run migrations."""
    db_path = Path(config.db_path).expanduser()
    db_path.parent.mkdir(parents=True, exist_ok=True)

    db = sqlite3.connect(str(db_path), check_same_thread=check_same_thread)
    db.row_factory = sqlite3.Row
    db.execute("PRAGMA journal_mode=WAL")
    db.execute("PRAGMA foreign_keys=ON")
    db.execute("PRAGMA busy_timeout=5000")

    _migrate(db)
    return db


def _migrate(db: sqlite3.Connection) -> None:
    """Create tables if they don't exist and record the schema version."""
    db.execute("CREATE TABLE IF NOT EXISTS meta (key TEXT PRIMARY KEY, value TEXT)")
    stored = db.execute("SELECT value FROM meta WHERE key = 'schema_version'").fetchone()
    current = int(stored[0]) if stored else 0
    if current > SCHEMA_VERSION:
        raise RuntimeError(
            f"Index schema v{current} is newer than this version of palace (v{SCHEMA_VERSION})"
        )
    if current < SCHEMA_VERSION:
        logger.info("Migrating index schema v%d → v%d", current, SCHEMA_VERSION)

    db.executescript("""
        CREATE TABLE IF NOT EXISTS notes (
            id INTEGER PRIMARY KEY,
            path TEXT UNIQUE NOT NULL,
            title TEXT,
            type TEXT,
            created TEXT,
            modified TEXT,
            source TEXT,
            confidence REAL,
            verified INTEGER DEFAULT 0,
            content TEXT,
            content_hash TEXT
        );

        CREATE TABLE IF NOT EXISTS note_tags (
            id INTEGER PRIMARY KEY,
            note_id INTEGER NOT NULL REFERENCES notes(id) ON DELETE CASCADE,
            tag TEXT NOT NULL,
            UNIQUE(note_id, tag)
        );

        -- target_path is the raw wiki-link text, resolved at query time
        CREATE TABLE IF NOT EXISTS links (
            id INTEGER PRIMARY KEY,
            source_id INTEGER NOT NULL REFERENCES notes(id) ON DELETE CASCADE,
            target_path TEXT NOT NULL
        );

        CREATE INDEX IF NOT EXISTS idx_notes_type ON notes(type);
        CREATE INDEX IF NOT EXISTS idx_notes_modified ON notes(modified);
        CREATE INDEX IF NOT EXISTS idx_note_tags_tag ON note_tags(tag);
        CREATE INDEX IF NOT EXISTS idx_note_tags_note_id ON note_tags(note_id);
        CREATE INDEX IF NOT EXISTS idx_links_target ON links(target_path);
        CREATE INDEX IF NOT EXISTS idx_links_source_id ON links(source_id);
    """)
    db.execute(
        "INSERT OR REPLACE INTO meta (key, value) VALUES ('schema_version', ?)",
        (str(SCHEMA_VERSION),),
    )
    db.commit()


@contextmanager
def readSnapshot(db: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Run a block of reads inside one read transaction.

    WAL readers see a single consistent snapshot for the whole transaction.
    Nested use joins the transaction that is already open.
    """
    if db.in_transaction:
        yield db
        return
    db.execute("BEGIN")
    try:
        yield db
    finally:
        db.rollback()


def escapeLike(text: str) -> str:
    """Escape LIKE wildcards; pair with ESCAPE '\\'."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def stripExtension(path: str) -> str:
    return path[: -len(NOTE_EXTENSION)] if path.endswith(NOTE_EXTENSION) else path


# -- Index primitives (writes belong to the indexing pipeline) --


def upsertNote(
    db: sqlite3.Connection,
    path: str,
    *,
    title: str | None = None,
    type: str | None = None,
    created: str | None = None,
    modified: str | None = None,
    source: str | None = None,
    confidence: float | None = None,
    verified: bool = False,
    content: str | None = None,
    tags: Iterable[str] = (),
    links: Iterable[str] = (),
) -> int:
    """Insert or replace a note row with its tags and raw link targets. Returns note ID."""
    content_hash = hashlib.sha256(content.encode()).hexdigest() if content is not None else None
    row = db.execute("SELECT id FROM notes WHERE path = ?", (path,)).fetchone()
    if row:
        note_id = row["id"]
        db.execute(
            """UPDATE notes SET title = ?, type = ?, created = ?, modified = ?, source = ?,
               confidence = ?, verified = ?, content = ?, content_hash = ?
               WHERE id = ?""",
            (title, type, created, modified, source, confidence, int(verified), content,
             content_hash, note_id),
        )
        db.execute("DELETE FROM note_tags WHERE note_id = ?", (note_id,))
        db.execute("DELETE FROM links WHERE source_id = ?", (note_id,))
    else:
        cursor = db.execute(
            """INSERT INTO notes (path, title, type, created, modified, source, confidence,
               verified, content, content_hash)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (path, title, type, created, modified, source, confidence, int(verified), content,
             content_hash),
        )
        note_id = cursor.lastrowid
        assert note_id is not None

    db.executemany(
        "INSERT OR IGNORE INTO note_tags (note_id, tag) VALUES (?, ?)",
        [(note_id, tag) for tag in tags],
    )
    db.executemany(
        "INSERT INTO links (source_id, target_path) VALUES (?, ?)",
        [(note_id, target) for target in links],
    )
    db.commit()
    return note_id


def deleteNote(db: sqlite3.Connection, path: str) -> bool:
    """Delete a note (cascades to tags and links). Returns True if found."""
    cursor = db.execute("DELETE FROM notes WHERE path = ?", (path,))
    db.commit()
    return cursor.rowcount > 0


def getNoteRow(db: sqlite3.Connection, path: str) -> sqlite3.Row | None:
    """Fetch a note's metadata row by exact path."""
    return db.execute(f"SELECT {NOTE_COLUMNS} FROM notes n WHERE n.path = ?", (path,)).fetchone()


def tagsByNote(db: sqlite3.Connection, note_ids: Iterable[int]) -> dict[int, list[str]]:
    """Map note ID → tags in insertion order, in one query."""
    ids = list(dict.fromkeys(note_ids))
    if not ids:
        return {}
    placeholders = ",".join("?" for _ in ids)
    rows = db.execute(
        f"SELECT note_id, tag FROM note_tags WHERE note_id IN ({placeholders}) ORDER BY id",
        ids,
    ).fetchall()
    tags: dict[int, list[str]] = {}
    for row in rows:
        tags.setdefault(row["note_id"], []).append(row["tag"])
    return tags


def linkTargets(db: sqlite3.Connection, note_id: int) -> list[str]:
    """Raw link targets of a note in stored order."""
    rows = db.execute(
        "SELECT target_path FROM links WHERE source_id = ? ORDER BY id", (note_id,)
    ).fetchall()
    return [r["target_path"] for r in rows]


def indexStats(db: sqlite3.Connection) -> dict:
    """Return index statistics."""
    with readSnapshot(db):
        notes = db.execute("SELECT COUNT(*) FROM notes").fetchone()[0]
        tags = db.execute("SELECT COUNT(DISTINCT tag) FROM note_tags").fetchone()[0]
        links = db.execute("SELECT COUNT(*) FROM links").fetchone()[0]
        types = db.execute(
            "SELECT type, COUNT(*) AS n FROM notes WHERE type IS NOT NULL GROUP BY type ORDER BY type"
        ).fetchall()
    return {
        "notes": notes,
        "distinct_tags": tags,
        "links": links,
        "types": {r["type"]: r["n"] for r in types},
    }
