"""Project outline: module -> class -> method nesting rebuilt from flat occurrences.

SCIP documents carry no parent pointers, so nesting is recovered from the
symbol strings themselves. Output is deterministic for a fixed index.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterable

from .cache import DocumentRecord
from .languages import SUPPORTED_EXTENSIONS
from .roles import is_definition
from .symbols import SymbolKind, extract_enclosing_type, parse_symbol

_SOURCE_DIRS = ("src", "lib")


@dataclass
class CodeTreeNode:
    kind: SymbolKind
    name: str
    file: str | None = None
    line: int | None = None
    character: int | None = None
    children: list[CodeTreeNode] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"kind": self.kind, "name": self.name}
        if self.file is not None:
            d["file"] = self.file
        if self.line is not None:
            d["line"] = self.line
        if self.character is not None:
            d["character"] = self.character
        d["children"] = [c.to_dict() for c in self.children]
        return d


def is_supported_file(path: str) -> bool:
    return path.endswith(SUPPORTED_EXTENSIONS)


def path_to_module_name(path: str) -> str:
    """'src/pkg/utils.py' -> 'pkg.utils'."""
    stem, dot, ext = path.rpartition(".")
    if dot and f".{ext}" in SUPPORTED_EXTENSIONS:
        path = stem
    parts = re.split(r"[\\/]+", path)
    if parts and parts[0] in _SOURCE_DIRS:
        parts = parts[1:]
    return ".".join(parts)


def _sort_key(node: CodeTreeNode) -> tuple[str, str]:
    # Case-insensitive first, lowercase before uppercase on ties
    return (node.name.casefold(), node.name.swapcase())


def _add_document(module: CodeTreeNode, doc: DocumentRecord) -> None:
    path = doc.relative_path
    classes: dict[str, CodeTreeNode] = {}
    top_level: list[CodeTreeNode] = []

    for occ in doc.occurrences:
        if not occ.symbol or not is_definition(occ.roles):
            continue
        parsed = parse_symbol(occ.symbol)

        if parsed.kind == "Class":
            node = CodeTreeNode("Class", parsed.name, path, occ.line, occ.character)
            classes[parsed.name] = node
            top_level.append(node)
        elif parsed.kind == "Method":
            class_name = extract_enclosing_type(occ.symbol)
            if class_name:
                parent = classes.get(class_name)
                if parent is None:
                    # Method seen before its class definition: placeholder, never merged
                    parent = CodeTreeNode("Class", class_name, path)
                    classes[class_name] = parent
                    module.children.append(parent)
            else:
                parent = module
            parent.children.append(
                CodeTreeNode("Method", parsed.name, path, occ.line, occ.character)
            )
        elif parsed.kind == "Function":
            top_level.append(
                CodeTreeNode("Function", parsed.name, path, occ.line, occ.character)
            )

    top_level.sort(key=_sort_key)
    module.children.extend(top_level)


def build_project_tree(documents: Iterable[DocumentRecord]) -> list[CodeTreeNode]:
    """One Module node per source module, in first-seen order.

    Documents mapping to the same module name are merged; the first one
    seen owns the node's ``file``.
    """
    modules: dict[str, CodeTreeNode] = {}
    for doc in documents:
        if not is_supported_file(doc.relative_path):
            continue
        name = path_to_module_name(doc.relative_path)
        module = modules.get(name)
        if module is None:
            module = CodeTreeNode("Module", name, doc.relative_path)
            modules[name] = module
        _add_document(module, doc)
    return list(modules.values())
