"""In-memory cache of a decoded SCIP index.

States: Unloaded (initial, and after clear()) and Loaded. A failed load raises
NeedsReindexError and leaves the cache Unloaded. Concurrent first loads share a
single in-flight task, so the file is read and decoded once.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path

from . import scip

logger = logging.getLogger("scipnav.cache")

INDEX_DIR = ".scip"
INDEX_FILE = "index.scip"


class NeedsReindexError(RuntimeError):
    """The SCIP index is missing, unreadable or fails to decode."""

    def __init__(self, message: str):
        super().__init__(f"SCIP index appears corrupted or outdated: {message}")
        self.cause_message = message


@dataclass(frozen=True)
class OccurrenceRecord:
    symbol: str
    line: int
    character: int
    roles: int


@dataclass(frozen=True)
class DocumentRecord:
    relative_path: str
    occurrences: tuple[OccurrenceRecord, ...]
    language: str = ""


@dataclass(frozen=True)
class IndexSnapshot:
    documents: tuple[DocumentRecord, ...]
    tool_name: str = ""
    tool_version: str = ""
    project_root: str = ""

    @property
    def occurrence_count(self) -> int:
        return sum(len(d.occurrences) for d in self.documents)


def default_index_path(project_root: str | Path) -> Path:
    return Path(project_root) / INDEX_DIR / INDEX_FILE


def _occurrence_record(occ) -> OccurrenceRecord:
    # range is [startLine, startChar, ...]; only the start position is kept
    rng = list(occ.range[:2])
    line = rng[0] if len(rng) > 0 else 0
    character = rng[1] if len(rng) > 1 else 0
    return OccurrenceRecord(
        symbol=occ.symbol,
        line=line,
        character=character,
        roles=occ.symbol_roles,
    )


def snapshot_from_index(index) -> IndexSnapshot:
    """Copy a decoded scip.Index message into an immutable snapshot."""
    documents = tuple(
        DocumentRecord(
            relative_path=doc.relative_path,
            occurrences=tuple(_occurrence_record(o) for o in doc.occurrences),
            language=doc.language,
        )
        for doc in index.documents
    )
    meta = index.metadata
    return IndexSnapshot(
        documents=documents,
        tool_name=meta.tool_info.name,
        tool_version=meta.tool_info.version,
        project_root=meta.project_root,
    )


def read_index_file(path: Path) -> IndexSnapshot:
    """Read and decode an index file (blocking)."""
    data = path.read_bytes()
    return snapshot_from_index(scip.decode_index(data))


class IndexCache:
    """Lazily loaded, explicitly invalidated SCIP index."""

    def __init__(self, index_path: str | Path):
        self.index_path = Path(index_path)
        self._snapshot: IndexSnapshot | None = None
        self._pending: asyncio.Task | None = None
        self._generation = 0

    @property
    def snapshot(self) -> IndexSnapshot | None:
        return self._snapshot

    def is_loaded(self) -> bool:
        return self._snapshot is not None

    async def exists(self) -> bool:
        try:
            return await asyncio.to_thread(self.index_path.is_file)
        except OSError:
            return False

    async def load(self) -> IndexSnapshot:
        """Ensure the index is Loaded and return it.

        Raises NeedsReindexError if the file is missing, unreadable or corrupted.
        """
        if self._snapshot is not None:
            return self._snapshot

        task = self._pending
        if task is None:
            task = asyncio.ensure_future(self._load(self._generation))
            task.add_done_callback(self._load_done)
            self._pending = task
        # Shielded so one cancelled caller does not cancel the shared load
        return await asyncio.shield(task)

    async def _load(self, generation: int) -> IndexSnapshot:
        logger.debug("Loading SCIP index from %s", self.index_path)
        try:
            snapshot = await asyncio.to_thread(read_index_file, self.index_path)
        except Exception as e:
            logger.warning("Failed to load SCIP index %s: %s", self.index_path, e)
            raise NeedsReindexError(str(e) or type(e).__name__) from e

        if generation == self._generation:
            self._snapshot = snapshot
            logger.info(
                "Loaded SCIP index: %d documents, %d occurrences",
                len(snapshot.documents), snapshot.occurrence_count,
            )
        else:
            logger.debug("Discarding SCIP index load superseded by clear()")
        return snapshot

    def _load_done(self, task: asyncio.Task) -> None:
        if self._pending is task:
            self._pending = None
        if not task.cancelled():
            task.exception()  # mark retrieved; awaiters still get it raised

    def clear(self) -> None:
        """Drop the loaded index; the next load() reads the file again."""
        self._snapshot = None
        self._pending = None
        self._generation += 1
