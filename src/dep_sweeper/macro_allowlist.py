"""
Fallback table for crates that are mostly consumed through macros.

A rule fires on a plain substring hit, which favours recall: a crate that is
used must never be reported, even at the cost of the odd missed removal.
"""

from dataclasses import dataclass
from typing import Dict, List, MutableSet, Optional, Sequence, Tuple


@dataclass(frozen=True)
class MacroOnlyRule:
    """A crate that counts as used when any marker appears in the source."""

    name: str
    markers: Tuple[str, ...]

    def matches(self, text: str) -> bool:
        return any(marker in text for marker in self.markers)


def default_markers(name: str) -> Tuple[str, ...]:
    """Macro invocation and path import markers for a crate name."""
    return (f"{name}!", f"use {name}::")


DEFAULT_MACRO_CRATES = ("anyhow", "thiserror", "lazy_static", "serde")

DEFAULT_MACRO_ALLOWLIST: Tuple[MacroOnlyRule, ...] = tuple(
    MacroOnlyRule(name, default_markers(name)) for name in DEFAULT_MACRO_CRATES
)


def build_macro_allowlist(
    overrides: Optional[Dict[str, Optional[List[str]]]] = None,
    base: Sequence[MacroOnlyRule] = DEFAULT_MACRO_ALLOWLIST,
) -> Tuple[MacroOnlyRule, ...]:
    """
    Merge configured overrides over the base table.

    Args:
        overrides: name -> markers; None means default markers, [] drops the rule
        base: Rules to start from

    Returns:
        Tuple[MacroOnlyRule, ...]: Rules in base order, new names appended
    """
    rules: Dict[str, MacroOnlyRule] = {rule.name: rule for rule in base}

    for name, markers in (overrides or {}).items():
        if markers is None:
            rules[name] = MacroOnlyRule(name, default_markers(name))
        elif not markers:
            rules.pop(name, None)
        else:
            rules[name] = MacroOnlyRule(name, tuple(markers))

    return tuple(rules.values())


def apply_macro_allowlist(
    text: str,
    used: MutableSet[str],
    rules: Sequence[MacroOnlyRule] = DEFAULT_MACRO_ALLOWLIST,
) -> MutableSet[str]:
    """Insert every rule name whose markers occur in the text."""
    for rule in rules:
        if rule.matches(text):
            used.add(rule.name)
    return used
