"""Shared test fixtures."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from palace.config import PalaceConfig
from palace.db import connect, upsertNote


@pytest.fixture
def tmp_db_path(tmp_path: Path) -> str:
    return str(tmp_path / "test_index.db")


@pytest.fixture
def config(tmp_db_path: str) -> PalaceConfig:
    return PalaceConfig(db_path=tmp_db_path)


@pytest.fixture
def db(config: PalaceConfig) -> sqlite3.Connection:
    conn = connect(config)
    yield conn
    conn.close()


def seedVault(db: sqlite3.Connection) -> None:
    """Small vault with a two-note cycle, title/filename links, broken links and orphans.

    projects/alpha.md ──▶ tech/Docker.md ──▶ tech/kubernetes.md
          ▲    │               ▲
          │    ▼               │ (by title "Containers")
    projects/beta.md ──────────┘

    inbox/deadend.md links only to a missing note; inbox/orphan.md has no links.
    """
    upsertNote(
        db,
        "projects/alpha.md",
        title="Project Alpha",
        type="project",
        created="2024-01-01",
        modified="2024-03-01",
        confidence=0.9,
        verified=True,
        tags=["project", "active"],
        links=["Docker", "beta", "Missing Note"],
    )
    upsertNote(
        db,
        "projects/beta.md",
        title="Project Beta",
        type="project",
        created="2024-01-02",
        modified="2024-02-01",
        tags=["project"],
        links=["projects/alpha.md", "Containers"],
    )
    upsertNote(
        db,
        "tech/Docker.md",
        title="Containers",
        type="reference",
        created="2023-06-01",
        modified="2024-01-15",
        tags=["devops"],
        links=["Kubernetes"],
    )
    upsertNote(
        db,
        "tech/kubernetes.md",
        title="K8s",
        type="reference",
        created="2023-06-02",
        modified="2024-01-10",
        tags=["devops"],
    )
    upsertNote(
        db,
        "inbox/orphan.md",
        title="Lonely",
        type="note",
        created="2023-12-01",
        modified="2023-12-01",
    )
    upsertNote(
        db,
        "inbox/deadend.md",
        type="note",
        created="2023-11-01",
        modified="2023-11-01",
        tags=["draft"],
        links=["Nowhere"],
    )


@pytest.fixture
def vault(db: sqlite3.Connection) -> sqlite3.Connection:
    seedVault(db)
    return db
