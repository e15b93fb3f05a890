"""Shared helpers for building SCIP index files in tests."""

from pathlib import Path

import pytest

from scipnav import scip
from scipnav.scip import SymbolRole

DEF = int(SymbolRole.DEFINITION)
READ = int(SymbolRole.READ_ACCESS)
WRITE = int(SymbolRole.WRITE_ACCESS)
IMPORT = int(SymbolRole.IMPORT)


def make_index(documents, tool: tuple[str, str] | None = None):
    """Build a scip.Index message.

    documents: list of (relative_path, [(symbol, roles, range), ...])
    """
    index = scip.Index()
    if tool:
        index.metadata.tool_info.name = tool[0]
        index.metadata.tool_info.version = tool[1]
    for path, occurrences in documents:
        doc = index.documents.add(relative_path=path)
        for symbol, roles, rng in occurrences:
            doc.occurrences.add(symbol=symbol, symbol_roles=roles, range=list(rng))
    return index


def write_index(root: Path, documents, tool: tuple[str, str] | None = None) -> Path:
    """Serialize an index to <root>/.scip/index.scip and return its path."""
    path = root / ".scip" / "index.scip"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(make_index(documents, tool).SerializeToString())
    return path


@pytest.fixture
def greeter_project(tmp_path):
    """One TypeScript file with a class and a method."""
    src = tmp_path / "src"
    src.mkdir()
    (src / "app.ts").write_text(
        "export class Greeter {\n"
        "  greet(): string { return 'hi'; }\n"
        "}\n"
    )
    write_index(tmp_path, [
        ("src/app.ts", [
            ("`pkg`/Greeter#", DEF, (0, 13, 20)),
            ("`pkg`/Greeter#greet().", DEF, (1, 2, 7)),
        ]),
    ], tool=("scip-typescript", "0.3.14"))
    return tmp_path
