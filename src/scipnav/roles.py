"""Occurrence role classification."""

from __future__ import annotations

from .scip import SymbolRole

# First match wins when several bits are set.
_ROLE_LABELS: tuple[tuple[SymbolRole, str], ...] = (
    (SymbolRole.DEFINITION, "definition"),
    (SymbolRole.WRITE_ACCESS, "write"),
    (SymbolRole.READ_ACCESS, "read"),
    (SymbolRole.IMPORT, "import"),
)


def is_definition(roles: int) -> bool:
    return bool(roles & SymbolRole.DEFINITION)


def describe_role(roles: int) -> str:
    """Human-readable label for a role bitmask, e.g. 'definition' or 'read'."""
    for flag, label in _ROLE_LABELS:
        if roles & flag:
            return label
    return "reference"
