"""Translate parsed queries to parameterized SQL and run them against the index."""

from __future__ import annotations

import logging
import sqlite3
from types import MappingProxyType
from typing import Any

from palace.db import escapeLike, readSnapshot, tagsByNote
from palace.dataview.ast import (
    Comparison,
    ComparisonOperator,
    Contains,
    Logical,
    ParsedQuery,
    SortClause,
    SortOrder,
    WhereClause,
)
from palace.dataview.errors import DQLSemanticError, UnknownFieldError
from palace.dataview.parser import parseDQL
from palace.models import QueryResult

logger = logging.getLogger("palace")

DEFAULT_LIMIT = 100
DEFAULT_FIELDS = ("type", "created", "modified")
DEFAULT_SORT = SortClause("modified", SortOrder.DESC)
TAGS_FIELD = "tags"

# Logical field name → notes column. Keys are lower-case.
FIELD_COLUMNS: MappingProxyType[str, str] = MappingProxyType(
    {
        "path": "path",
        "title": "title",
        "type": "type",
        "created": "created",
        "modified": "modified",
        "source": "source",
        "confidence": "confidence",
        "verified": "verified",
        "content": "content",
        # Dataview aliases
        "file.path": "path",
        "file.name": "title",
        "file.ctime": "created",
        "file.mtime": "modified",
    }
)
SUPPORTED_FIELDS: tuple[str, ...] = (*FIELD_COLUMNS, TAGS_FIELD)


def isTagsField(field: str) -> bool:
    return field.lower() == TAGS_FIELD


def getColumn(field: str) -> str:
    """Map a field name to its notes column, or raise UnknownFieldError."""
    column = FIELD_COLUMNS.get(field.lower())
    if column is None:
        raise UnknownFieldError(field, SUPPORTED_FIELDS)
    return column


# -- WHERE translation --


def whereToSql(where: WhereClause, params: list[Any]) -> str:
    """Compile a WHERE tree to a SQL fragment, appending parameters in order."""
    if isinstance(where, Comparison):
        return _comparisonToSql(where, params)
    if isinstance(where, Contains):
        return _containsToSql(where, params)
    if isinstance(where, Logical):
        left = whereToSql(where.left, params)
        right = whereToSql(where.right, params)
        return f"({left} {where.operator.value} {right})"
    raise TypeError(f"Unknown condition type: {type(where).__name__}")


def _comparisonToSql(cond: Comparison, params: list[Any]) -> str:
    if isTagsField(cond.field):
        if cond.operator == ComparisonOperator.EQ:
            params.append(str(cond.value))
            return "n.id IN (SELECT note_id FROM note_tags WHERE tag = ?)"
        if cond.operator == ComparisonOperator.NE:
            params.append(str(cond.value))
            return "n.id NOT IN (SELECT note_id FROM note_tags WHERE tag = ?)"
        raise DQLSemanticError(
            f"Operator {cond.operator.value} is not supported for tags; use =, != or contains()"
        )

    column = getColumn(cond.field)
    value = cond.value
    if column == "verified" and isinstance(value, bool):
        value = int(value)
    params.append(value)
    return f"n.{column} {cond.operator.value} ?"


def _containsToSql(cond: Contains, params: list[Any]) -> str:
    if isTagsField(cond.field):
        params.append(cond.value)
        return "n.id IN (SELECT note_id FROM note_tags WHERE tag = ?)"

    column = getColumn(cond.field)
    params.append(f"%{escapeLike(cond.value)}%")
    return f"n.{column} LIKE ? ESCAPE '\\'"


# -- SELECT construction --


def _selectColumns(fields: tuple[str, ...]) -> list[str]:
    """Columns to select: path and title always, then requested or default fields."""
    columns = ["path", "title"]
    for field in fields or DEFAULT_FIELDS:
        if isTagsField(field):
            continue
        column = getColumn(field)
        if column not in columns:
            columns.append(column)
    return columns


def buildSql(query: ParsedQuery, default_limit: int = DEFAULT_LIMIT) -> tuple[str, list[Any]]:
    """Translate a parsed query into (sql, params). Raises on unknown fields."""
    params: list[Any] = []
    columns = _selectColumns(query.fields)
    select = ", ".join(f"n.{c} AS {c}" for c in columns)
    sql = f"SELECT n.id AS id, {select} FROM notes n"

    conditions: list[str] = []
    if query.from_path:
        conditions.append("n.path LIKE ? ESCAPE '\\'")
        params.append(f"{escapeLike(query.from_path)}%")
    if query.where is not None:
        conditions.append(whereToSql(query.where, params))
    if conditions:
        sql += f" WHERE {' AND '.join(conditions)}"

    sort = query.sort or DEFAULT_SORT
    if isTagsField(sort.field):
        raise DQLSemanticError("Cannot sort by tags")
    sql += f" ORDER BY n.{getColumn(sort.field)} {sort.order.value}"

    sql += " LIMIT ?"
    params.append(query.limit if query.limit is not None else default_limit)
    return sql, params


# -- Execution --


def _outputValue(column: str, value: Any) -> Any:
    if column == "verified" and value is not None:
        return bool(value)
    return value


def executeParsed(
    db: sqlite3.Connection,
    query: ParsedQuery,
    *,
    default_limit: int = DEFAULT_LIMIT,
) -> QueryResult:
    """Execute a parsed query. Tags are attached when requested or when no fields are."""
    sql, params = buildSql(query, default_limit)
    logger.debug("Executing DQL: %s %s", sql, params)

    requested = list(dict.fromkeys(query.fields))
    with_tags = not requested or any(isTagsField(f) for f in requested)

    with readSnapshot(db):
        rows = db.execute(sql, params).fetchall()
        tags = tagsByNote(db, [r["id"] for r in rows]) if with_tags else {}

    result_rows: list[dict[str, Any]] = []
    for row in rows:
        out: dict[str, Any] = {"path": row["path"], "title": row["title"]}
        for field in requested or DEFAULT_FIELDS:
            if isTagsField(field):
                continue
            column = getColumn(field)
            out[field] = _outputValue(column, row[column])
        if with_tags:
            out[TAGS_FIELD] = tags.get(row["id"], [])
        result_rows.append(out)

    fields = ["path", "title"]
    for field in requested or DEFAULT_FIELDS:
        if field not in fields and not isTagsField(field):
            fields.append(field)
    if with_tags:
        fields.append(TAGS_FIELD)

    logger.debug("DQL returned %d rows", len(result_rows))
    return QueryResult(
        query_type=query.query_type.value.lower(),
        fields=fields,
        rows=result_rows,
        total=len(result_rows),
    )


def executeQuery(
    db: sqlite3.Connection,
    query: str,
    *,
    default_limit: int = DEFAULT_LIMIT,
) -> QueryResult:
    """Parse and execute a query string."""
    return executeParsed(db, parseDQL(query), default_limit=default_limit)
