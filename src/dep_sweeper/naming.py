"""
Reconciliation between manifest names and source identifiers.

Cargo accepts `-` in crate names, but the crate is referenced as `_` in code.
"""

from typing import AbstractSet, Dict, Iterable

MANIFEST_SEPARATOR = "-"
IDENTIFIER_JOINER = "_"


def to_identifier(name: str) -> str:
    """Return the identifier form of a canonical dependency name."""
    return name.replace(MANIFEST_SEPARATOR, IDENTIFIER_JOINER)


def build_name_mapping(names: Iterable[str]) -> Dict[str, str]:
    """
    Build the identifier -> canonical name lookup.

    Args:
        names: Canonical names of every declared dependency

    Returns:
        Dict[str, str]: One entry per name, identity when nothing is substituted
    """
    return {to_identifier(name): name for name in names}


def resolve_identifier(name_mapping: Dict[str, str], identifier: str) -> str:
    """Map an identifier back to its canonical name, or return it unchanged."""
    return name_mapping.get(identifier, identifier)


def is_declared_name_used(name: str, used: AbstractSet[str]) -> bool:
    """Check both the canonical and the identifier form against the used set."""
    return name in used or to_identifier(name) in used
