"""Palace CLI: query and graph commands over the note index."""

from __future__ import annotations

import contextlib
import json
import logging
from collections.abc import Iterator
from typing import Any, get_args, get_origin

import typer
from pydantic import BaseModel
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from palace.config import GraphConfig, PalaceConfig, QueryConfig, loadConfig
from palace.dataview import DQLError
from palace.service import (
    svcBrokenLinks,
    svcDataview,
    svcIndexStats,
    svcLinks,
    svcOrphans,
    svcRelated,
)
from palace.state import AppState, closeState, createAppState

_FORMATS = ("human", "json")
_QUERY_FORMATS = ("human", "json", "table", "list", "task")

_cli = typer.Typer(
    name="palace",
    help="Dataview queries and link-graph analysis over a note index.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
_config_cli = typer.Typer(help="Read/write [bold]~/.palace/config.json[/bold].")
_cli.add_typer(_config_cli, name="config")

_console = Console()


# ============================================================
# Helpers
# ============================================================


def _checkFormat(format: str, allowed: tuple[str, ...] = _FORMATS) -> None:
    if format not in allowed:
        raise typer.BadParameter(f"Invalid format {format!r}; choose {'|'.join(allowed)}")


def _fail(format: str, message: str, label: str = "Error") -> typer.Exit:
    if format == "json":
        print(json.dumps({"ok": False, "error": message}))
    else:
        _console.print(f"[red]{label}:[/red] {escape(message)}")
    return typer.Exit(1)


@contextlib.contextmanager
def _openState() -> Iterator[AppState]:
    state = createAppState(loadConfig())
    try:
        yield state
    finally:
        closeState(state)


def _run(format: str, fn: Any, *args: Any, **kwargs: Any) -> dict:
    """Call a service function; query and argument errors become exit code 1."""
    try:
        with _openState() as state:
            result = fn(state, *args, **kwargs)
    except DQLError as e:
        raise _fail(format, str(e), "Query error") from e
    except ValueError as e:
        raise _fail(format, str(e), "Invalid") from e
    if "error" in result:
        raise _fail(format, result["error"], "Not found")
    return result


def _emitJson(result: dict) -> None:
    print(json.dumps(result, default=str))


def _table(*columns: str) -> Table:
    t = Table(box=box.SIMPLE, padding=(0, 1))
    for col in columns:
        t.add_column(col)
    return t


# ============================================================
# Config helpers
# ============================================================


def _fmtVal(v: Any) -> str:
    if v is None:
        return "[dim](not set)[/dim]"
    if isinstance(v, bool):
        return "true" if v else "false"
    return str(v)


def _annStr(ann: Any) -> str:
    args = get_args(ann)
    if args:
        non_none = [a for a in args if a is not type(None)]
        base = non_none[0] if non_none else args[0]
        name = getattr(base, "__name__", str(base))
        return f"{name} | None" if type(None) in args else name
    return getattr(ann, "__name__", str(ann))


def _getFieldAnnotation(dotpath: str) -> Any:
    """Walk PalaceConfig fields along a dotted key; None if the key is unknown."""
    model: type[BaseModel] = PalaceConfig
    parts = dotpath.split(".")
    for part in parts[:-1]:
        f = model.model_fields.get(part)
        if f is None or not (isinstance(f.annotation, type) and issubclass(f.annotation, BaseModel)):
            return None
        model = f.annotation
    f = model.model_fields.get(parts[-1])
    return f.annotation if f else None


def _coerceTyped(value: str, annotation: Any) -> Any:
    args = get_args(annotation) if get_origin(annotation) else ()
    types = [a for a in args if a is not type(None)] if args else [annotation]
    base = types[0] if types else str

    if value.lower() in ("none", "null") and type(None) in args:
        return None
    if base is bool:
        if value.lower() in ("true", "yes", "1"):
            return True
        if value.lower() in ("false", "no", "0"):
            return False
        raise ValueError(f"Expected bool, got {value!r}")
    if base is int:
        return int(value)
    if base is float:
        return float(value)
    return value


def _renderConfigSection(title: str, model: BaseModel, defaults: BaseModel) -> None:
    _console.print(f"\n[bold]{title}[/bold]")
    t = Table(show_header=False, box=box.SIMPLE, padding=(0, 1))
    t.add_column("key", style="dim")
    t.add_column("val")
    for key in type(model).model_fields:
        if isinstance(getattr(model, key), BaseModel):
            continue
        val, default = getattr(model, key), getattr(defaults, key)
        fmt = _fmtVal(val)
        if val != default:
            fmt = f"[yellow]{fmt}[/yellow]"
        t.add_row(key, fmt)
    _console.print(t)


# ============================================================
# Commands
# ============================================================


def _versionCallback(value: bool) -> None:
    if value:
        from palace.version import __version__

        print(__version__)
        raise typer.Exit()


@_cli.callback()
def _main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    show_version: bool = typer.Option(
        False, "--version", callback=_versionCallback, is_eager=True, help="Show version and exit"
    ),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s | %(message)s",
    )


@_cli.command()
def query(
    text: str = typer.Argument(help="Dataview query text"),
    format: str = typer.Option(
        "human", "--format", "-f", help="Output format: human|json|table|list|task"
    ),
) -> None:
    """Run a Dataview (DQL) query against the index."""
    _checkFormat(format, _QUERY_FORMATS)
    render = "table" if format == "human" else format
    result = _run(format, svcDataview, text, render)
    if format == "json":
        print(result["output"])
        return
    _console.print(result["output"], markup=False, highlight=False, soft_wrap=True)
    _console.print(f"\n[dim]{result['message']}[/dim]")


@_cli.command()
def links(
    path: str = typer.Argument(help="Note path, e.g. projects/alpha.md"),
    direction: str = typer.Option("both", "--direction", "-d", help="incoming|outgoing|both"),
    depth: int | None = typer.Option(None, "--depth", help="Traversal depth (clamped to max)"),
    format: str = typer.Option("human", "--format", "-f", help="Output format: human|json"),
) -> None:
    """Show backlinks and outgoing links, or traverse several hops."""
    _checkFormat(format)
    result = _run(format, svcLinks, path, direction, depth)
    if format == "json":
        _emitJson(result)
        return

    _console.print(f"[bold]{result['title']}[/bold]  [dim]{result['path']}[/dim]")
    if "results" not in result:
        for key in ("incoming", "outgoing"):
            if key not in result:
                continue
            t = _table("source" if key == "incoming" else "target", "resolved to")
            for link in result[key]:
                name = link["source"] if key == "incoming" else link["target"]
                t.add_row(name, link["target_path"] or "[red](unresolved)[/red]")
            _console.print(f"\n[bold]{key.title()}[/bold] ({len(result[key])})")
            _console.print(t)
        return

    t = _table("depth", "path", "title", "trail")
    for r in result["results"]:
        t.add_row(str(r["depth"]), r["path"], r["title"], " → ".join(r["path_trail"]))
    _console.print(t)
    _console.print(f"[dim]{result['total_results']} notes within depth {result['max_depth']}[/dim]")


@_cli.command()
def related(
    path: str = typer.Argument(help="Note path to find relatives of"),
    method: str = typer.Option("both", "--method", "-m", help="links|tags|both"),
    limit: int | None = typer.Option(None, "--limit", "-n", help="Max results (clamped)"),
    format: str = typer.Option("human", "--format", "-f", help="Output format: human|json"),
) -> None:
    """Notes related by shared link targets and/or tags."""
    _checkFormat(format)
    result = _run(format, svcRelated, path, method, limit)
    if format == "json":
        _emitJson(result)
        return

    _console.print(f"[bold]{result['method_description']}[/bold]")
    t = _table("score", "path", "shared links", "shared tags")
    for r in result["related"]:
        t.add_row(
            f"{r['score']:.3f}",
            r["path"],
            ", ".join(r["shared_links"] or []),
            ", ".join(r["shared_tags"] or []),
        )
    _console.print(t)


@_cli.command()
def orphans(
    type: str = typer.Option(
        "isolated", "--type", "-t", help="no_incoming|no_outgoing|isolated"
    ),
    path: str | None = typer.Option(None, "--path", "-p", help="Restrict to a path prefix"),
    limit: int | None = typer.Option(None, "--limit", "-n", help="Max results (clamped)"),
    format: str = typer.Option("human", "--format", "-f", help="Output format: human|json"),
) -> None:
    """List notes disconnected from the link graph."""
    _checkFormat(format)
    result = _run(format, svcOrphans, type, path, limit)
    if format == "json":
        _emitJson(result)
        return

    _console.print(f"[bold]{result['description']}[/bold]")
    t = _table("path", "title", "type", "modified")
    for o in result["orphans"]:
        t.add_row(o["path"], o["title"], o["type"] or "", o["modified"] or "")
    _console.print(t)
    more = " (more available)" if result["has_more"] else ""
    _console.print(f"[dim]{result['count']} of {result['total']}{more}[/dim]")


@_cli.command()
def broken(
    format: str = typer.Option("human", "--format", "-f", help="Output format: human|json"),
) -> None:
    """List links whose target matches no note."""
    _checkFormat(format)
    result = _run(format, svcBrokenLinks)
    if format == "json":
        _emitJson(result)
        return

    if not result["broken"]:
        _console.print("[green]No broken links.[/green]")
        return
    t = _table("source", "target")
    for b in result["broken"]:
        t.add_row(b["source"], b["target"])
    _console.print(t)


@_cli.command()
def stats(
    format: str = typer.Option("human", "--format", "-f", help="Output format: human|json"),
) -> None:
    """Index statistics."""
    _checkFormat(format)
    result = _run(format, svcIndexStats)
    if format == "json":
        _emitJson(result)
        return

    t = Table(show_header=False, box=box.SIMPLE, padding=(0, 1))
    t.add_column("key", style="dim")
    t.add_column("val")
    for key in ("notes", "links", "distinct_tags", "db_path", "db_size_mb"):
        t.add_row(key, str(result[key]))
    for note_type, count in result["types"].items():
        t.add_row(f"type:{note_type}", str(count))
    _console.print(t)


# ── config ───────────────────────────────────────────────────


@_config_cli.command("list")
def config_list(
    format: str = typer.Option("human", "--format", "-f", help="Output format: human|json"),
) -> None:
    """Pretty-print the current config grouped by section."""
    _checkFormat(format)
    cfg = loadConfig()
    if format == "json":
        print(json.dumps(cfg.model_dump()))
        return

    defaults = PalaceConfig()
    _renderConfigSection("Index", cfg, defaults)
    _renderConfigSection("Query", cfg.query, QueryConfig())
    _renderConfigSection("Graph", cfg.graph, GraphConfig())


@_config_cli.command("get")
def config_get(
    dotpath: str = typer.Argument(help="Dot-separated key, e.g. graph.max_depth"),
    format: str = typer.Option("human", "--format", "-f", help="Output format: human|json"),
) -> None:
    """Get a single config value."""
    _checkFormat(format)
    node: Any = loadConfig().model_dump()
    for part in dotpath.split("."):
        if not (isinstance(node, dict) and part in node):
            raise _fail(format, dotpath, "Key not found")
        node = node[part]

    ann = _getFieldAnnotation(dotpath)
    if format == "json":
        print(json.dumps({"key": dotpath, "value": node, "type": _annStr(ann) if ann else "unknown"}))
    else:
        type_hint = f"  [dim]({_annStr(ann)})[/dim]" if ann else ""
        _console.print(f"[bold]{dotpath}[/bold] = {_fmtVal(node)}{type_hint}")


@_config_cli.command("set")
def config_set(
    dotpath: str = typer.Argument(help="Dot-separated key path"),
    value: str = typer.Argument(help="Value (type-coerced via schema)"),
    format: str = typer.Option("human", "--format", "-f", help="Output format: human|json"),
) -> None:
    """Set a config value."""
    _checkFormat(format)
    from palace.config import CONFIG_PATH

    ann = _getFieldAnnotation(dotpath)
    if ann is None:
        raise _fail(format, dotpath, "Key not found")
    try:
        coerced = _coerceTyped(value, ann)
    except ValueError as e:
        raise _fail(format, str(e), "Invalid") from e

    raw: dict = {}
    if CONFIG_PATH.exists():
        with contextlib.suppress(json.JSONDecodeError):
            raw = json.loads(CONFIG_PATH.read_text())

    parts = dotpath.split(".")
    node = raw
    for part in parts[:-1]:
        if not isinstance(node.get(part), dict):
            node[part] = {}
        node = node[part]
    node[parts[-1]] = coerced

    try:
        PalaceConfig(**raw)
    except ValueError as e:
        raise _fail(format, str(e), "Invalid value") from e

    CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
    CONFIG_PATH.write_text(json.dumps(raw, indent=2) + "\n")
    if format == "json":
        print(json.dumps({"ok": True, "key": dotpath, "value": coerced}))
    else:
        _console.print(f"[green]Set[/green] {dotpath} = {coerced!r}")


def main() -> None:
    _cli()


if __name__ == "__main__":
    main()
