"""Service layer: caller-facing operations over the query and graph engines."""

from __future__ import annotations

import os

from palace.db import indexStats, readSnapshot
from palace.dataview import OutputFormat, executeQuery, formatResult
from palace.graph import (
    findOrphans,
    findRelatedNotes,
    getBrokenLinks,
    getIncomingLinks,
    getNoteMetadataByPath,
    getOutgoingLinks,
    traverseGraph,
)
from palace.models import Direction, OrphanType, RelatednessMethod, TraversalResult
from palace.state import AppState

_ORPHAN_DESCRIPTIONS = {
    OrphanType.NO_INCOMING: "Notes with no backlinks (no other notes link to them)",
    OrphanType.NO_OUTGOING: "Notes with no outgoing links (they link to no other notes)",
    OrphanType.ISOLATED: "Completely isolated notes (no incoming or outgoing links)",
}

_METHOD_DESCRIPTIONS = {
    RelatednessMethod.LINKS: "Related by shared link targets",
    RelatednessMethod.TAGS: "Related by shared tags",
    RelatednessMethod.BOTH: "Related by shared links and tags (combined score)",
}


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


# ── Query ────────────────────────────────────────────────────


def svcDataview(state: AppState, query: str, format: str = "json") -> dict:
    """Run a query and render it. Parse and field errors propagate."""
    fmt = OutputFormat(format)
    result = executeQuery(state.db, query, default_limit=state.config.query.default_limit)
    return {
        "query": query,
        "format": fmt.value,
        "total": result.total,
        "fields": result.fields,
        "output": formatResult(result, fmt),
        "rows": result.rows if fmt == OutputFormat.JSON else None,
        "message": f"Found {result.total} result{'' if result.total == 1 else 's'}",
    }


# ── Graph ────────────────────────────────────────────────────


def svcLinks(
    state: AppState,
    path: str,
    direction: str = "both",
    depth: int | None = None,
) -> dict:
    """Backlinks and/or outgoing links; multi-hop traversal when depth > 1."""
    graph_cfg = state.config.graph
    direction_ = Direction(direction)
    depth = _clamp(depth if depth is not None else graph_cfg.default_depth, 1, graph_cfg.max_depth)

    with readSnapshot(state.db):
        return _links(state, path, direction_, depth)


def _links(state: AppState, path: str, direction_: Direction, depth: int) -> dict:
    note = getNoteMetadataByPath(state.db, path)
    if note is None:
        return {"error": f"Note not found: {path}"}

    if depth == 1:
        result: dict = {"path": note.path, "title": note.title, "depth": 1}
        incoming = outgoing = None
        if direction_ in (Direction.INCOMING, Direction.BOTH):
            incoming = getIncomingLinks(state.db, path)
            result["incoming"] = [link.model_dump() for link in incoming]
        if direction_ in (Direction.OUTGOING, Direction.BOTH):
            outgoing = getOutgoingLinks(state.db, path)
            result["outgoing"] = [link.model_dump() for link in outgoing]
        result["incoming_count"] = len(incoming) if incoming is not None else 0
        result["outgoing_count"] = len(outgoing) if outgoing is not None else 0
        return result

    results = traverseGraph(state.db, path, direction_, depth)
    by_depth: dict[int, list[dict]] = {}
    for r in results:
        by_depth.setdefault(r.depth, []).append(_traversalDict(r))
    return {
        "path": note.path,
        "title": note.title,
        "direction": direction_.value,
        "max_depth": depth,
        "total_results": len(results),
        "results_by_depth": by_depth,
        "results": [_traversalDict(r) for r in results],
    }


def _traversalDict(r: TraversalResult) -> dict:
    return {
        "depth": r.depth,
        "path_trail": r.path_trail,
        "path": r.note.path,
        "title": r.note.title,
        "type": r.note.type,
    }


def svcRelated(
    state: AppState,
    path: str,
    method: str = "both",
    limit: int | None = None,
) -> dict:
    """Notes related by shared links and/or tags, best first."""
    graph_cfg = state.config.graph
    method_ = RelatednessMethod(method)
    limit = _clamp(
        limit if limit is not None else graph_cfg.related_limit, 1, graph_cfg.max_related_limit
    )

    with readSnapshot(state.db):
        note = getNoteMetadataByPath(state.db, path)
        if note is None:
            return {"error": f"Note not found: {path}"}
        related = findRelatedNotes(state.db, path, method_, limit)

    return {
        "source": {"path": note.path, "title": note.title},
        "method": method_.value,
        "method_description": _METHOD_DESCRIPTIONS[method_],
        "count": len(related),
        "related": [
            {
                "path": r.note.path,
                "title": r.note.title,
                "score": round(r.score, 3),
                "shared_links": r.shared_links,
                "shared_tags": r.shared_tags,
                "type": r.note.type,
            }
            for r in related
        ],
    }


def svcOrphans(
    state: AppState,
    orphan_type: str = "isolated",
    path: str | None = None,
    limit: int | None = None,
) -> dict:
    """Disconnected notes, optionally under a path prefix."""
    graph_cfg = state.config.graph
    type_ = OrphanType(orphan_type)
    limit = _clamp(
        limit if limit is not None else graph_cfg.orphan_limit, 1, graph_cfg.max_orphan_limit
    )

    orphans = findOrphans(state.db, type_, path)
    limited = orphans[:limit]
    return {
        "type": type_.value,
        "description": _ORPHAN_DESCRIPTIONS[type_],
        "count": len(limited),
        "total": len(orphans),
        "has_more": len(orphans) > limit,
        "orphans": [
            {"path": o.path, "title": o.title, "type": o.type, "modified": o.modified}
            for o in limited
        ],
    }


def svcBrokenLinks(state: AppState) -> dict:
    """Links whose target resolves to no note."""
    broken = getBrokenLinks(state.db)
    return {
        "count": len(broken),
        "broken": [{"source": b.source, "target": b.target} for b in broken],
    }


def svcIndexStats(state: AppState) -> dict:
    stats = indexStats(state.db)
    db_path = os.path.expanduser(state.config.db_path)
    db_size = os.path.getsize(db_path) if os.path.exists(db_path) else 0
    return {
        **stats,
        "db_path": db_path,
        "db_size_bytes": db_size,
        "db_size_mb": round(db_size / (1024 * 1024), 2),
    }
