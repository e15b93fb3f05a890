"""scipnav MCP Server.

Exposes SCIP index queries to AI agents via the Model Context Protocol.
"""

from __future__ import annotations

import json
import logging
import time
from datetime import datetime, timezone
from pathlib import Path

from mcp.server.fastmcp import FastMCP

from .cache import NeedsReindexError
from .languages import reindex_hint
from .query import ScipQuery

logger = logging.getLogger("scipnav.server")

mcp = FastMCP(
    "scipnav",
    instructions="""\
Precise code navigation backed by a SCIP index (.scip/index.scip).

## Which Tool to Use
| Need | Tool |
|------|------|
| Overview of modules, classes, functions | `scip_project_tree()` |
| Where is X defined? | `scip_find_definition(symbol)` |
| Where is X used? | `scip_find_references(symbol)` |
| What is defined in this file? | `scip_list_symbols(file)` |
| Find symbols by partial name | `scip_search_symbols(query)` |
| Is the index present / healthy? | `scip_index_status()` |

Symbol arguments match by case-insensitive substring against full SCIP symbols,
so `greet`, `Greeter#greet` and the full symbol string all work.

## Stale or missing index
If a tool reports "not indexed" or "needs reindex", run the command in its `hint`
from the project root, then call `scip_reload_index()`.
""",
)

# Global state, set up lazily on first tool call or via configure()
_query: ScipQuery | None = None
_project_root: Path | None = None
_index_path: Path | None = None
_server_start_time: float | None = None


def _get_query() -> ScipQuery:
    global _query
    if _query is None:
        _query = ScipQuery(_project_root or Path.cwd(), _index_path)
    return _query


def _reindex_hint() -> str:
    return reindex_hint(_get_query().project_root)


async def _unavailable_error() -> str | None:
    """JSON error if the index is missing or fails to load, else None."""
    query = _get_query()
    if query.cache.is_loaded():
        # The loaded snapshot stays valid until clear(), whatever happens on disk
        return None
    if not await query.index_exists():
        return json.dumps({
            "error": f"Project not indexed: no SCIP index at {query.index_path}",
            "hint": _reindex_hint(),
        }, indent=2)
    try:
        await query.load_index()
    except NeedsReindexError as e:
        return json.dumps({
            "error": str(e),
            "needs_reindex": True,
            "hint": _reindex_hint(),
        }, indent=2)
    return None


@mcp.tool()
async def scip_find_definition(symbol: str, context_file: str | None = None) -> str:
    """Find where a symbol is defined.

    Matches definitions whose SCIP symbol contains `symbol` (case-insensitive)
    and returns file, 0-based line/character, and the current source line.

    Args:
        symbol: Symbol name or fragment (e.g. 'greet', 'Greeter#greet')
        context_file: Optional file the lookup started from (relative path)
    """
    error = await _unavailable_error()
    if error:
        return error

    results = await _get_query().find_definition(symbol, context_file)
    if not results:
        return json.dumps({
            "symbol": symbol,
            "result_count": 0,
            "results": [],
            "hint": f"No definitions. Try scip_search_symbols(\"{symbol}\") for name matches.",
        }, indent=2)
    return json.dumps([r.to_dict() for r in results], indent=2)


@mcp.tool()
async def scip_find_references(symbol: str) -> str:
    """Find every occurrence of a symbol (definitions, reads, writes, imports).

    Args:
        symbol: Symbol name or fragment, matched case-insensitively as a substring
    """
    error = await _unavailable_error()
    if error:
        return error

    results = await _get_query().find_references(symbol)
    return json.dumps({
        "symbol": symbol,
        "result_count": len(results),
        "results": [r.to_dict() for r in results],
    }, indent=2)


@mcp.tool()
async def scip_list_symbols(file: str) -> str:
    """List the symbols defined in a file.

    Args:
        file: Path relative to the project root, exactly as indexed (e.g. 'src/app.ts')
    """
    error = await _unavailable_error()
    if error:
        return error

    results = await _get_query().list_symbols(file)
    if not results:
        return json.dumps({
            "file": file,
            "symbols": [],
            "hint": "No definitions found. Check the path is relative to the project root.",
        }, indent=2)
    return json.dumps({"file": file, "symbols": [r.to_dict() for r in results]}, indent=2)


@mcp.tool()
async def scip_search_symbols(query: str) -> str:
    """Search symbols by name (case-insensitive substring of the parsed name).

    Args:
        query: Name fragment, e.g. 'user' finds 'UserService' and 'get_user'
    """
    error = await _unavailable_error()
    if error:
        return error

    results = await _get_query().search_symbols(query)
    return json.dumps({
        "query": query,
        "result_count": len(results),
        "results": [r.to_dict() for r in results],
    }, indent=2)


@mcp.tool()
async def scip_project_tree() -> str:
    """Outline of the project: modules with their classes, methods and functions."""
    error = await _unavailable_error()
    if error:
        return error

    tree = await _get_query().build_project_tree()
    return json.dumps([node.to_dict() for node in tree], indent=2)


@mcp.tool()
async def scip_index_status() -> str:
    """Report whether the SCIP index exists, is loaded, and what it contains."""
    query = _get_query()
    status = await query.index_status()
    status["project_root"] = str(query.project_root)
    if not status["exists"] or "error" in status:
        status["hint"] = _reindex_hint()
    elif status.get("stale"):
        status["hint"] = "Sources changed since the index was built. " + _reindex_hint() + \
            ", then call scip_reload_index()"
    if _server_start_time is not None:
        started = datetime.fromtimestamp(_server_start_time, tz=timezone.utc)
        status["server_started_at"] = started.isoformat()
    return json.dumps(status, indent=2)


@mcp.tool()
async def scip_reload_index() -> str:
    """Drop the cached index and load it again (call after re-running the indexer)."""
    query = _get_query()
    query.clear_cache()
    error = await _unavailable_error()
    if error:
        return error
    status = await query.index_status()
    return json.dumps({"ok": True, **status}, indent=2)


def configure(project_root: Path | None = None, index_path: Path | None = None) -> None:
    """Point the server at a project (and optionally a non-default index file)."""
    global _query, _project_root, _index_path
    _query = None
    _project_root = project_root
    _index_path = index_path


def run_server(transport: str = "stdio", port: int = 8743):
    """Start the MCP server."""
    global _server_start_time
    if _server_start_time is None:
        _server_start_time = time.time()
    if transport == "sse":
        mcp.settings.host = "127.0.0.1"
        mcp.settings.port = port
    logger.info("Serving SCIP index %s over %s", _get_query().index_path, transport)
    mcp.run(transport=transport)
