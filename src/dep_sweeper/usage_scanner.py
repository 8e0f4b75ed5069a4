"""
Lexical usage detection for Rust sources.

A fixed battery of regular expressions extracts identifiers that look like
crate references. Matching is purely textual: comments, string literals and
`#[cfg]`-disabled code are scanned like any other text.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple, Union

from .error_handling import ErrorCategory, PatternError, get_error_handler
from .macro_allowlist import (
    DEFAULT_MACRO_ALLOWLIST,
    MacroOnlyRule,
    apply_macro_allowlist,
)
from .naming import resolve_identifier
from .sources import read_source_file
from .structured_logging import log_source_scanned

IDENT = r"[a-zA-Z_][a-zA-Z0-9_]*"

PATH_QUALIFIERS = ("crate::", "self::", "::")
RELATIVE_PATH_KEYWORDS = ("super", "crate")


@dataclass(frozen=True)
class ScanPattern:
    """One lexical rule; group 1 captures the candidate name(s)."""

    name: str
    regex: "re.Pattern[str]"
    description: str = ""

    def candidates(self, text: str) -> Iterable[str]:
        for match in self.regex.finditer(text):
            value = match.group(1)
            if value:
                yield value


PATTERN_SPECS: Tuple[Tuple[str, str, str], ...] = (
    ("use_path", rf"use\s+({IDENT})\s*::", "use foo::bar"),
    (
        "use_item",
        rf"use\s+({IDENT})(?:\s+as\s+{IDENT})?\s*;",
        "use foo; / use foo as bar;",
    ),
    ("extern_crate", rf"extern\s+crate\s+({IDENT})", "extern crate foo"),
    ("derive", r"#\[derive\(([^)]*)\)\]", "#[derive(Foo, Bar)]"),
    ("qualified_path", rf"({IDENT})::\w+", "foo::thing"),
    ("macro_call", rf"({IDENT})!\s*[({{]", "foo!(...) / foo!{...}"),
    # Names internal submodules; kept for coverage even though it is noisy.
    ("mod_decl", rf"mod\s+({IDENT})\s*;", "mod foo;"),
    ("type_annotation", rf":\s*({IDENT})::", "x: foo::Type"),
)


def compile_scan_patterns(
    specs: Sequence[Tuple[str, str, str]],
) -> Tuple[ScanPattern, ...]:
    """
    Compile (name, regex, description) triples into scan patterns.

    Raises:
        PatternError: If any regex is invalid or lacks a capture group
    """
    patterns = []
    for name, source, description in specs:
        try:
            regex = re.compile(source)
        except re.error as e:
            get_error_handler().critical(
                ErrorCategory.PATTERN,
                f"Scan pattern '{name}' does not compile: {e}",
                "usage_scanner",
                "compile_scan_patterns",
                exception=e,
                details={"pattern": source},
            )
            raise PatternError(f"Invalid scan pattern '{name}': {e}")
        if regex.groups < 1:
            raise PatternError(f"Scan pattern '{name}' has no capture group")
        patterns.append(ScanPattern(name, regex, description))
    return tuple(patterns)


DEFAULT_SCAN_PATTERNS = compile_scan_patterns(PATTERN_SPECS)


def clean_token(raw: str) -> Optional[str]:
    """
    Normalize one captured token.

    Strips `crate::`, `self::` and `::` prefixes until none is left, then
    returns None for empty tokens and for `super`/`crate` paths.
    """
    token = raw.strip()
    stripped = True
    while stripped:
        stripped = False
        for prefix in PATH_QUALIFIERS:
            if token.startswith(prefix):
                token = token[len(prefix):]
                stripped = True

    if not token or token.startswith(RELATIVE_PATH_KEYWORDS):
        return None
    return token


class UsageScanner:
    """
    Collects identifiers that look like crate references.

    Follows the RORO pattern: receives source text, returns the used set.
    """

    def __init__(
        self,
        name_mapping: Dict[str, str],
        patterns: Sequence[ScanPattern] = DEFAULT_SCAN_PATTERNS,
        macro_allowlist: Sequence[MacroOnlyRule] = DEFAULT_MACRO_ALLOWLIST,
    ):
        self.name_mapping = name_mapping
        self.patterns = tuple(patterns)
        self.macro_allowlist = tuple(macro_allowlist)

    def extract_identifiers(self, text: str) -> List[str]:
        """Return cleaned, reconciled names from every pattern, duplicates kept."""
        found = []
        for pattern in self.patterns:
            for value in pattern.candidates(text):
                for raw in value.split(","):
                    token = clean_token(raw)
                    if token is not None:
                        found.append(resolve_identifier(self.name_mapping, token))
        return found

    def scan_text(self, text: str, used: Optional[Set[str]] = None) -> Set[str]:
        """
        Add every identifier referenced in text to the used set.

        Args:
            text: One unit of source text
            used: Set to augment; a new one is created when omitted

        Returns:
            Set[str]: The augmented set
        """
        if used is None:
            used = set()
        used.update(self.extract_identifiers(text))
        apply_macro_allowlist(text, used, self.macro_allowlist)
        return used

    def scan_file(self, path: Union[str, Path], used: Optional[Set[str]] = None) -> Set[str]:
        if used is None:
            used = set()
        before = len(used)
        self.scan_text(read_source_file(path), used)
        log_source_scanned(str(path), len(used) - before)
        return used

    def scan_files(self, paths: Iterable[Union[str, Path]]) -> Set[str]:
        used: Set[str] = set()
        for path in paths:
            self.scan_file(path, used)
        return used
