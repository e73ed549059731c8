"""Pydantic models for notes, links, graph results and query results."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class Direction(str, Enum):
    INCOMING = "incoming"
    OUTGOING = "outgoing"
    BOTH = "both"


class OrphanType(str, Enum):
    NO_INCOMING = "no_incoming"
    NO_OUTGOING = "no_outgoing"
    ISOLATED = "isolated"


class RelatednessMethod(str, Enum):
    LINKS = "links"
    TAGS = "tags"
    BOTH = "both"


class NoteMetadata(BaseModel):
    path: str
    filename: str
    title: str
    type: str | None = None
    created: str | None = None
    modified: str | None = None
    source: str | None = None
    confidence: float | None = None
    verified: bool | None = None
    tags: list[str] = Field(default_factory=list)


class GraphLink(BaseModel):
    source: str
    target: str  # raw target text, or the note path for backlinks
    resolved: bool
    target_path: str | None = None  # resolved note path


class GraphNode(BaseModel):
    path: str
    title: str
    incoming_count: int
    outgoing_count: int


class TraversalResult(BaseModel):
    depth: int
    path_trail: list[str]  # root → this note, inclusive
    note: NoteMetadata


class RelatedNote(BaseModel):
    note: NoteMetadata
    score: float
    shared_links: list[str] | None = None
    shared_tags: list[str] | None = None


class QueryResult(BaseModel):
    query_type: str  # "table", "list" or "task"
    fields: list[str] = Field(default_factory=list)
    rows: list[dict[str, Any]] = Field(default_factory=list)
    total: int = 0
