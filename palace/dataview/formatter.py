"""Render query results as markdown table, wiki-link list, task list or JSON."""

from __future__ import annotations

import json
from enum import Enum
from typing import Any

from palace.db import stripExtension
from palace.models import QueryResult


class OutputFormat(str, Enum):
    TABLE = "table"
    LIST = "list"
    TASK = "task"
    JSON = "json"


def formatValue(value: Any) -> str:
    if value is None:
        return "-"
    if isinstance(value, bool):
        return "✓" if value else "✗"
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    if isinstance(value, (int, float)):
        # Values in [0, 1] are confidences
        if 0 <= value <= 1:
            return f"{round(value * 100)}%"
        return str(value)
    return str(value)


def _escapeCell(value: str) -> str:
    return value.replace("|", "\\|").replace("\n", " ")


def _wikiLink(row: dict[str, Any]) -> str:
    return f"[[{stripExtension(row['path'])}|{row['title']}]]"


def formatAsTable(result: QueryResult) -> str:
    if not result.rows:
        return "*No results*"

    headers = result.fields
    cells = [[_escapeCell(formatValue(row.get(f))) for f in headers] for row in result.rows]
    widths = [max(len(h), *(len(r[i]) for r in cells)) for i, h in enumerate(headers)]

    lines = [
        "| " + " | ".join(h.ljust(w) for h, w in zip(headers, widths, strict=True)) + " |",
        "| " + " | ".join("-" * w for w in widths) + " |",
    ]
    for r in cells:
        lines.append("| " + " | ".join(c.ljust(w) for c, w in zip(r, widths, strict=True)) + " |")
    return "\n".join(lines)


def formatAsList(result: QueryResult) -> str:
    if not result.rows:
        return "*No results*"
    return "\n".join(f"- {_wikiLink(row)}" for row in result.rows)


def formatAsTask(result: QueryResult) -> str:
    if not result.rows:
        return "*No tasks*"
    lines = []
    for row in result.rows:
        done = row.get("completed") is True or row.get("done") is True
        lines.append(f"- {'[x]' if done else '[ ]'} {_wikiLink(row)}")
    return "\n".join(lines)


def formatAsJson(result: QueryResult) -> str:
    return json.dumps(
        {
            "type": result.query_type,
            "fields": result.fields,
            "total": result.total,
            "rows": result.rows,
        },
        indent=2,
        ensure_ascii=False,
    )


_FORMATTERS = {
    OutputFormat.TABLE: formatAsTable,
    OutputFormat.LIST: formatAsList,
    OutputFormat.TASK: formatAsTask,
    OutputFormat.JSON: formatAsJson,
}


def formatResult(result: QueryResult, fmt: OutputFormat | str) -> str:
    """Render a result in the given format."""
    return _FORMATTERS[OutputFormat(fmt)](result)
