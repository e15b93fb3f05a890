"""SCIP symbol string grammar.

A SCIP symbol looks like::

    scip-python python myproj 0.1.0 `src.app`/Foo#bar().
    └─scheme─┘ └mgr─┘ └pkg─┘ └ver┘ └────descriptors────┘

The descriptor path is a run of segments, each a name followed by a suffix:

    name/      namespace        name#      type
    name.      term             name().    method (disambiguator may sit in the parens)
    (name)     parameter        [name]     type parameter
    name:      meta             name!      macro

Names may be backtick-escaped (`` `src.app` ``), with a doubled backtick standing
for a literal one. Symbols without the four-field header are read as a bare
descriptor path, so shorthand such as ``pkg/Mod#method()`` still parses.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal, NamedTuple

SymbolKind = Literal["Package", "Module", "Class", "Function", "Method", "Parameter", "Variable"]

# Four header fields (spaces inside a field are escaped as double spaces), then descriptors.
_HEADER_RE = re.compile(r"^(?:[^ ]|  )+ (?:[^ ]|  )+ (?:[^ ]|  )+ (?:[^ ]|  )+ (?P<descriptors>.+)$")

_NAME = r"(?:`(?:[^`]|``)*`|[^\s`/#.:!()\[\]]+)"

_SEGMENT_RE = re.compile(
    rf"""
      \((?P<parameter>{_NAME})\)
    | \[(?P<type_parameter>{_NAME})\]
    | (?P<name>{_NAME})
      (?:
          (?P<method>\([^()]*\)\.?)
        | (?P<suffix>[/\#.:!])
      )?
    """,
    re.VERBOSE,
)

_SUFFIX_KINDS = {"/": "namespace", "#": "type", ".": "term", ":": "meta", "!": "macro"}


@dataclass(frozen=True)
class ParsedSymbol:
    name: str
    kind: SymbolKind


class _Segment(NamedTuple):
    kind: str
    name: str


def _unescape(name: str) -> str:
    if len(name) >= 2 and name.startswith("`") and name.endswith("`"):
        return name[1:-1].replace("``", "`")
    return name


def _segment(m: re.Match) -> _Segment:
    if m.group("parameter") is not None:
        return _Segment("parameter", _unescape(m.group("parameter")))
    if m.group("type_parameter") is not None:
        return _Segment("type_parameter", _unescape(m.group("type_parameter")))
    name = _unescape(m.group("name"))
    if m.group("method") is not None:
        return _Segment("method", name)
    suffix = m.group("suffix")
    if suffix is None:
        return _Segment("bare", name)
    return _Segment(_SUFFIX_KINDS[suffix], name)


def tokenize_descriptors(descriptors: str) -> list[_Segment] | None:
    """Split a descriptor path into segments. Returns None if it does not tokenize."""
    segments: list[_Segment] = []
    pos = 0
    while pos < len(descriptors):
        m = _SEGMENT_RE.match(descriptors, pos)
        if m is None or m.end() == pos:
            return None
        seg = _segment(m)
        # A suffix-less name is only legal as the final segment
        if seg.kind == "bare" and m.end() != len(descriptors):
            return None
        segments.append(seg)
        pos = m.end()
    return segments


def parse_symbol(symbol: str) -> ParsedSymbol:
    """Recover a display name and kind from a SCIP symbol string.

    Never raises: input that does not fit the grammar comes back as
    ``ParsedSymbol(name=symbol, kind="Variable")``.
    """
    fallback = ParsedSymbol(name=symbol, kind="Variable")
    text = symbol.strip()
    if not text:
        return fallback
    if text.startswith("local "):
        return ParsedSymbol(name=text[len("local "):].strip(), kind="Variable")

    header = _HEADER_RE.match(text)
    descriptors = header.group("descriptors") if header else text
    segments = tokenize_descriptors(descriptors)
    if not segments:
        return fallback

    last = segments[-1]
    scopes = segments[:-1]

    if last.kind == "method":
        if any(s.kind == "type" for s in scopes):
            return ParsedSymbol(name=last.name, kind="Method")
        return ParsedSymbol(name=last.name, kind="Function")
    if last.kind == "parameter":
        return ParsedSymbol(name=last.name, kind="Parameter")
    if last.kind == "type":
        return ParsedSymbol(name=last.name, kind="Class")
    if all(s.kind == "namespace" for s in segments) or (not scopes and last.kind == "bare"):
        return ParsedSymbol(name=last.name, kind="Package")
    return ParsedSymbol(name=last.name, kind="Variable")


def extract_enclosing_type(symbol: str) -> str | None:
    """Owning class name of a method symbol, e.g. ``Foo`` for `` `src.app`/Foo#bar(). ``.

    Takes the text after the last backtick, skips to the first ``/`` and returns
    what precedes the first ``#``. Returns None when any delimiter is missing.
    """
    tick = symbol.rfind("`")
    if tick == -1:
        return None
    after = symbol[tick + 1:]
    slash = after.find("/")
    if slash == -1:
        return None
    descriptor = after[slash + 1:]
    hash_idx = descriptor.find("#")
    if hash_idx == -1:
        return None
    return descriptor[:hash_idx] or None


def normalize_symbol(raw: str) -> str:
    return raw.strip().lower()
