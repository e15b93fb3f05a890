"""Query engine over a SCIP index.

Four lookups (definitions, references, per-file symbols, fuzzy name search)
plus the project outline. Every query ensures the index is loaded first and
returns an empty result if it cannot be; only an explicit load_index() call
raises NeedsReindexError.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from .cache import IndexCache, IndexSnapshot, NeedsReindexError, default_index_path
from .languages import needs_reindex
from .roles import describe_role, is_definition
from .symbols import normalize_symbol, parse_symbol
from .tree import CodeTreeNode, build_project_tree

logger = logging.getLogger("scipnav.query")

INDEX_PATH_ENV = "SCIPNAV_INDEX_PATH"


@dataclass
class Definition:
    symbol: str
    file: str
    line: int
    character: int
    snippet: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class Reference:
    symbol: str
    file: str
    line: int
    character: int
    role: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class SymbolInfo:
    symbol: str
    name: str
    kind: str
    file: str
    line: int
    character: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class SearchResult(SymbolInfo):
    pass


def resolve_index_path(project_root: str | Path, index_path: str | Path | None = None) -> Path:
    """Index location: explicit path, then $SCIPNAV_INDEX_PATH, then <root>/.scip/index.scip.

    Relative paths are taken relative to the project root.
    """
    root = Path(project_root)
    chosen = index_path or os.environ.get(INDEX_PATH_ENV)
    if not chosen:
        return default_index_path(root)
    path = Path(chosen).expanduser()
    return path if path.is_absolute() else root / path


def _read_lines(path: Path) -> list[str]:
    # Decoded without newline translation: a lone \r does not end a line
    return re.split(r"\r?\n", path.read_bytes().decode("utf-8"))


class ScipQuery:
    """Read-only queries against one project's SCIP index."""

    def __init__(self, project_root: str | Path, index_path: str | Path | None = None):
        self.project_root = Path(project_root)
        self.cache = IndexCache(resolve_index_path(self.project_root, index_path))

    @property
    def index_path(self) -> Path:
        return self.cache.index_path

    # --- Index lifecycle ---

    async def index_exists(self) -> bool:
        return await self.cache.exists()

    async def load_index(self) -> IndexSnapshot:
        """Load the index. Raises NeedsReindexError if missing or corrupted."""
        return await self.cache.load()

    def clear_cache(self) -> None:
        self.cache.clear()

    async def _snapshot(self) -> IndexSnapshot | None:
        try:
            return await self.cache.load()
        except NeedsReindexError as e:
            logger.debug("Index unavailable, returning no results: %s", e)
            return None

    async def index_status(self) -> dict[str, Any]:
        """Index file and load state. Never raises."""
        status: dict[str, Any] = {
            "index_path": str(self.index_path),
            "exists": await self.index_exists(),
            "loaded": self.cache.is_loaded(),
        }
        if not status["exists"]:
            return status
        try:
            snapshot = await self.cache.load()
        except NeedsReindexError as e:
            status["error"] = str(e)
            return status
        status.update({
            "loaded": True,
            "stale": await asyncio.to_thread(needs_reindex, self.project_root, self.index_path),
            "documents": len(snapshot.documents),
            "occurrences": snapshot.occurrence_count,
            "tool": snapshot.tool_name or None,
            "tool_version": snapshot.tool_version or None,
        })
        return status

    # --- Snippets ---

    async def _snippet(self, relative_path: str, line: int, lines_cache: dict[str, list[str] | None]) -> str:
        if not relative_path:
            return ""
        if relative_path not in lines_cache:
            try:
                lines_cache[relative_path] = await asyncio.to_thread(
                    _read_lines, self.project_root / relative_path,
                )
            except (OSError, UnicodeDecodeError) as e:
                logger.debug("No snippet for %s: %s", relative_path, e)
                lines_cache[relative_path] = None
        lines = lines_cache[relative_path]
        if lines is None or not 0 <= line < len(lines):
            return ""
        return lines[line]

    # --- Queries ---

    async def find_definition(self, symbol: str, context_file: str | None = None) -> list[Definition]:
        """Definition occurrences whose symbol contains ``symbol`` (case-insensitive).

        ``context_file`` is accepted for callers that know where the lookup
        started; it does not narrow the match.
        """
        snapshot = await self._snapshot()
        if snapshot is None:
            return []

        needle = normalize_symbol(symbol)
        lines_cache: dict[str, list[str] | None] = {}
        definitions: list[Definition] = []

        for doc in snapshot.documents:
            for occ in doc.occurrences:
                if not occ.symbol or needle not in normalize_symbol(occ.symbol):
                    continue
                if not is_definition(occ.roles):
                    continue
                definitions.append(Definition(
                    symbol=occ.symbol,
                    file=doc.relative_path,
                    line=occ.line,
                    character=occ.character,
                    snippet=await self._snippet(doc.relative_path, occ.line, lines_cache),
                ))

        return definitions

    async def find_references(self, symbol: str) -> list[Reference]:
        """Every occurrence, of any role, whose symbol contains ``symbol``."""
        snapshot = await self._snapshot()
        if snapshot is None:
            return []

        needle = normalize_symbol(symbol)
        references: list[Reference] = []
        for doc in snapshot.documents:
            for occ in doc.occurrences:
                if not occ.symbol or needle not in normalize_symbol(occ.symbol):
                    continue
                references.append(Reference(
                    symbol=occ.symbol,
                    file=doc.relative_path,
                    line=occ.line,
                    character=occ.character,
                    role=describe_role(occ.roles),
                ))
        return references

    async def list_symbols(self, file: str) -> list[SymbolInfo]:
        """Symbols defined in ``file`` (exact relative path), first definition wins."""
        snapshot = await self._snapshot()
        if snapshot is None:
            return []

        target = next((d for d in snapshot.documents if d.relative_path == file), None)
        if target is None:
            return []

        seen: dict[str, SymbolInfo] = {}
        for occ in target.occurrences:
            if not occ.symbol or not is_definition(occ.roles):
                continue
            if occ.symbol in seen:
                continue
            parsed = parse_symbol(occ.symbol)
            seen[occ.symbol] = SymbolInfo(
                symbol=occ.symbol,
                name=parsed.name,
                kind=parsed.kind,
                file=file,
                line=occ.line,
                character=occ.character,
            )
        return list(seen.values())

    async def search_symbols(self, query: str) -> list[SearchResult]:
        """Occurrences whose parsed name contains ``query``. One result per occurrence."""
        snapshot = await self._snapshot()
        if snapshot is None:
            return []

        needle = normalize_symbol(query)
        results: list[SearchResult] = []
        for doc in snapshot.documents:
            for occ in doc.occurrences:
                if not occ.symbol:
                    continue
                parsed = parse_symbol(occ.symbol)
                if needle not in normalize_symbol(parsed.name):
                    continue
                results.append(SearchResult(
                    symbol=occ.symbol,
                    name=parsed.name,
                    kind=parsed.kind,
                    file=doc.relative_path,
                    line=occ.line,
                    character=occ.character,
                ))
        return results

    async def build_project_tree(self) -> list[CodeTreeNode]:
        snapshot = await self._snapshot()
        if snapshot is None:
            return []
        return build_project_tree(snapshot.documents)
