"""Config loading from ~/.palace/config.json with env var overrides."""

from __future__ import annotations

import json
from pathlib import Path
from typing import ClassVar

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

CONFIG_DIR = Path.home() / ".palace"
CONFIG_PATH = CONFIG_DIR / "config.json"


class QueryConfig(BaseModel):
    default_limit: int = Field(default=100, ge=1)


class GraphConfig(BaseModel):
    default_depth: int = Field(default=1, ge=1)
    max_depth: int = Field(default=5, ge=1)
    related_limit: int = Field(default=10, ge=1)
    max_related_limit: int = Field(default=50, ge=1)
    orphan_limit: int = Field(default=50, ge=1)
    max_orphan_limit: int = Field(default=100, ge=1)

    @model_validator(mode="after")
    def _defaultsWithinBounds(self) -> GraphConfig:
        if self.default_depth > self.max_depth:
            raise ValueError("default_depth must not exceed max_depth")
        if self.related_limit > self.max_related_limit:
            raise ValueError("related_limit must not exceed max_related_limit")
        if self.orphan_limit > self.max_orphan_limit:
            raise ValueError("orphan_limit must not exceed max_orphan_limit")
        return self


class PalaceConfig(BaseSettings):
    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_prefix="PALACE_",
        env_nested_delimiter="__",
        extra="ignore",
    )
    db_path: str = Field(default_factory=lambda: str(CONFIG_DIR / "index.db"))
    # Sub-configs
    query: QueryConfig = Field(default_factory=QueryConfig)
    graph: GraphConfig = Field(default_factory=GraphConfig)


def loadConfig() -> PalaceConfig:
    """Load config from ~/.palace/config.json with env var overrides."""
    if CONFIG_PATH.exists():
        raw = json.loads(CONFIG_PATH.read_text())
        return PalaceConfig(**raw)
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    config = PalaceConfig()
    CONFIG_PATH.write_text(config.model_dump_json(indent=2))
    return config
