"""scipnav CLI.

Usage:
    scipnav definition SYMBOL   Where is SYMBOL defined
    scipnav references SYMBOL   Every occurrence of SYMBOL
    scipnav symbols FILE        Symbols defined in FILE
    scipnav search QUERY        Symbols whose name contains QUERY
    scipnav tree                Module/class/method outline
    scipnav status              Index status
    scipnav serve               Start MCP server
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path

import click

from . import __version__
from .cache import INDEX_DIR


def _find_repo_root(start: Path) -> Path:
    """Walk up from start to the nearest directory holding .scip/ or .git/."""
    check = start.resolve()
    while check != check.parent:
        if (check / INDEX_DIR).is_dir() or (check / ".git").exists():
            return check
        check = check.parent
    return start.resolve()


def _open_query(ctx: click.Context):
    """Build a ScipQuery and load its index, exiting with a hint on failure."""
    from .cache import NeedsReindexError
    from .languages import indexer_commands
    from .query import ScipQuery

    query = ScipQuery(ctx.obj["root"], ctx.obj["index"])

    async def _load():
        if not await query.index_exists():
            return f"No SCIP index at {query.index_path}."
        try:
            await query.load_index()
        except NeedsReindexError as e:
            return str(e)
        return None

    problem = asyncio.run(_load())
    if problem:
        click.echo(problem, err=True)
        commands = indexer_commands(query.project_root)
        if len(commands) == 1:
            click.echo("Generate it with:", err=True)
        else:
            click.echo("Generate it with ONE of (each overwrites the same index file):", err=True)
        for cmd in commands:
            click.echo(f"  {cmd}", err=True)
        sys.exit(1)
    return query


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose logging")
@click.option("--root", "root", type=click.Path(exists=True, file_okay=False),
              help="Project root (default: nearest dir with .scip/ or .git/)")
@click.option("--index", "index_path", type=click.Path(dir_okay=False),
              help="Index file (default: $SCIPNAV_INDEX_PATH or .scip/index.scip)")
@click.pass_context
def main(ctx: click.Context, verbose: bool, root: str | None, index_path: str | None):
    """scipnav — navigate a codebase through its SCIP index."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    ctx.ensure_object(dict)
    ctx.obj["root"] = Path(root).resolve() if root else _find_repo_root(Path.cwd())
    ctx.obj["index"] = Path(index_path).resolve() if index_path else None


@main.command()
@click.argument("symbol")
@click.option("--context-file", "-c", help="File the lookup starts from (relative path)")
@click.option("--json-output", "-j", is_flag=True, help="Output as JSON")
@click.pass_context
def definition(ctx: click.Context, symbol: str, context_file: str | None, json_output: bool):
    """Find where SYMBOL is defined."""
    query = _open_query(ctx)
    results = asyncio.run(query.find_definition(symbol, context_file))

    if json_output:
        click.echo(json.dumps([r.to_dict() for r in results], indent=2))
    elif not results:
        click.echo(f"No definitions for '{symbol}'")
    else:
        for r in results:
            click.echo(f"{r.file}:{r.line + 1}:{r.character + 1}  {r.symbol}")
            if r.snippet:
                click.echo(f"    {r.snippet.strip()}")


@main.command()
@click.argument("symbol")
@click.option("--json-output", "-j", is_flag=True, help="Output as JSON")
@click.pass_context
def references(ctx: click.Context, symbol: str, json_output: bool):
    """Find every occurrence of SYMBOL."""
    query = _open_query(ctx)
    results = asyncio.run(query.find_references(symbol))

    if json_output:
        click.echo(json.dumps([r.to_dict() for r in results], indent=2))
    elif not results:
        click.echo(f"No references for '{symbol}'")
    else:
        click.echo(f"Found {len(results)} references for '{symbol}':\n")
        for r in results:
            click.echo(f"  {r.role:<11} {r.file}:{r.line + 1}:{r.character + 1}  {r.symbol}")


@main.command()
@click.argument("file_path")
@click.option("--json-output", "-j", is_flag=True, help="Output as JSON")
@click.pass_context
def symbols(ctx: click.Context, file_path: str, json_output: bool):
    """List all symbols defined in FILE_PATH (relative to the project root)."""
    query = _open_query(ctx)
    results = asyncio.run(query.list_symbols(file_path))

    if json_output:
        click.echo(json.dumps([r.to_dict() for r in results], indent=2))
    elif not results:
        click.echo(f"No symbols found in '{file_path}'")
    else:
        click.echo(f"Symbols in {file_path}:\n")
        for s in results:
            click.echo(f"  L{s.line + 1:<5} {s.kind:<10} {s.name}")


@main.command()
@click.argument("query_text", metavar="QUERY")
@click.option("--limit", "-n", default=50, help="Max results shown (text output)")
@click.option("--json-output", "-j", is_flag=True, help="Output as JSON")
@click.pass_context
def search(ctx: click.Context, query_text: str, limit: int, json_output: bool):
    """Search symbols whose name contains QUERY."""
    query = _open_query(ctx)
    results = asyncio.run(query.search_symbols(query_text))

    if json_output:
        click.echo(json.dumps([r.to_dict() for r in results], indent=2))
    elif not results:
        click.echo(f"No results for '{query_text}'")
    else:
        click.echo(f"Found {len(results)} results for '{query_text}':\n")
        for r in results[:limit]:
            click.echo(f"  {r.kind:<10} {r.name:<30} {r.file}:{r.line + 1}")
        if len(results) > limit:
            click.echo(f"\n  ... {len(results) - limit} more (use --json-output for all)")


def _echo_node(node, depth: int = 0) -> None:
    loc = f"  L{node.line + 1}" if node.line is not None else ""
    click.echo(f"{'  ' * depth}{node.kind:<8} {node.name}{loc}")
    for child in node.children:
        _echo_node(child, depth + 1)


@main.command()
@click.option("--json-output", "-j", is_flag=True, help="Output as JSON")
@click.pass_context
def tree(ctx: click.Context, json_output: bool):
    """Show the module/class/method outline of the project."""
    query = _open_query(ctx)
    nodes = asyncio.run(query.build_project_tree())

    if json_output:
        click.echo(json.dumps([n.to_dict() for n in nodes], indent=2))
    elif not nodes:
        click.echo("No modules in index")
    else:
        for node in nodes:
            _echo_node(node)


@main.command()
@click.pass_context
def status(ctx: click.Context):
    """Show index status and statistics."""
    from .languages import detect_languages
    from .query import ScipQuery

    query = ScipQuery(ctx.obj["root"], ctx.obj["index"])
    info = asyncio.run(query.index_status())

    click.echo("scipnav Index Status")
    click.echo(f"  Project root: {query.project_root}")
    click.echo(f"  Index:        {info['index_path']}")
    langs = ", ".join(c.name for c in detect_languages(query.project_root)) or "none detected"
    click.echo(f"  Languages:    {langs}")

    if not info["exists"]:
        click.echo("\n  Not indexed.")
        return
    if "error" in info:
        click.echo(f"\n  ERROR: {info['error']}")
        return

    click.echo()
    click.echo(f"  Documents:    {info['documents']}")
    click.echo(f"  Occurrences:  {info['occurrences']}")
    if info.get("tool"):
        click.echo(f"  Indexer:      {info['tool']} {info.get('tool_version') or ''}".rstrip())
    if info.get("stale"):
        click.echo("\n  STALE: sources changed since the index was built; re-run the indexer.")


@main.command()
@click.option("--transport", "-t", type=click.Choice(["stdio", "sse"]), default="stdio",
              help="Transport (stdio or sse, default: stdio)")
@click.option("--port", "-p", default=8743, help="Port for SSE transport (default: 8743)")
@click.pass_context
def serve(ctx: click.Context, transport: str, port: int):
    """Start the MCP server."""
    from .server import configure, run_server

    configure(project_root=ctx.obj["root"], index_path=ctx.obj["index"])
    run_server(transport=transport, port=port)


if __name__ == "__main__":
    main()
