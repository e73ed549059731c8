"""Application state container, one explicit handle per index."""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass

from palace.config import PalaceConfig, loadConfig
from palace.db import connect

logger = logging.getLogger("palace")


@dataclass(frozen=True)
class AppState:
    db: sqlite3.Connection
    config: PalaceConfig


def createAppState(
    config: PalaceConfig | None = None,
    check_same_thread: bool = True,
) -> AppState:
    """Load config and open the index."""
    cfg = config or loadConfig()
    db = connect(cfg, check_same_thread=check_same_thread)
    logger.info("Palace index opened (db: %s)", cfg.db_path)
    return AppState(db=db, config=cfg)


def closeState(state: AppState) -> None:
    state.db.close()
    logger.debug("Palace index closed.")
