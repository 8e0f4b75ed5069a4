"""
Analysis engine tying manifest metadata, source scanning and reporting together.

A run is all-or-nothing: any collection failure propagates and no partial
result is produced.
"""

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, Iterable, List, Optional, Sequence, Tuple

from .cli_config import get_config
from .dependency import Dependency
from .macro_allowlist import MacroOnlyRule, build_macro_allowlist
from .manifest import load_dependencies
from .naming import build_name_mapping
from .reporting import find_unused_dependencies
from .sources import list_source_files
from .structured_logging import log_scan_complete, log_scan_start
from .usage_scanner import DEFAULT_SCAN_PATTERNS, ScanPattern, UsageScanner


@dataclass(frozen=True)
class AnalysisResult:
    """Complete analysis results for one crate."""

    dependencies: Tuple[Dependency, ...]
    used_identifiers: FrozenSet[str]
    unused: Tuple[Dependency, ...]
    files_scanned: int
    manifest_path: str
    source_dir: str
    scan_duration_ms: int = 0
    ignored: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def has_unused(self) -> bool:
        return len(self.unused) > 0

    @property
    def unused_names(self) -> List[str]:
        return [dep.name for dep in self.unused]


class DependencyAnalyzer:
    """
    Finds declared dependencies that no source file appears to reference.

    Follows the RORO pattern: receives a manifest path, returns an AnalysisResult.
    """

    def __init__(
        self,
        source_dir: Optional[str] = None,
        source_extension: str = ".rs",
        metadata_source: str = "toml",
        macro_allowlist: Optional[Sequence[MacroOnlyRule]] = None,
        ignored: Iterable[str] = (),
        patterns: Sequence[ScanPattern] = DEFAULT_SCAN_PATTERNS,
    ):
        """
        Initialize the analyzer.

        Args:
            source_dir: Directory to scan; relative paths resolve against the
                manifest's directory, None means `src` next to the manifest
            source_extension: Extension of source files to scan
            metadata_source: "toml" or "cargo"
            macro_allowlist: Macro-only rules; defaults to the built-in table
            ignored: Dependency names that are never reported
            patterns: Compiled scan patterns
        """
        self.source_dir = source_dir
        self.source_extension = source_extension
        self.metadata_source = metadata_source
        self.macro_allowlist = (
            tuple(macro_allowlist)
            if macro_allowlist is not None
            else build_macro_allowlist()
        )
        self.ignored = tuple(ignored)
        self.patterns = tuple(patterns)

    def resolve_source_dir(self, manifest_path: str) -> Path:
        source_dir = Path(self.source_dir or "src")
        if source_dir.is_absolute():
            return source_dir
        return Path(manifest_path).resolve().parent / source_dir

    def analyze(self, manifest_path: str) -> AnalysisResult:
        """
        Run a full analysis.

        Raises:
            MetadataError: If the manifest cannot be read
            SourceTreeError: If the source tree cannot be walked or read
        """
        start_time = time.time()

        dependencies = tuple(load_dependencies(manifest_path, self.metadata_source))

        scan_id = f"scan_{int(start_time)}"
        log_scan_start(scan_id, manifest_path, len(dependencies))

        source_root = self.resolve_source_dir(manifest_path)
        files = list_source_files(source_root, self.source_extension)

        scanner = UsageScanner(
            build_name_mapping(dep.name for dep in dependencies),
            patterns=self.patterns,
            macro_allowlist=self.macro_allowlist,
        )
        used = frozenset(scanner.scan_files(files))

        unused = tuple(find_unused_dependencies(dependencies, used, self.ignored))
        ignored = tuple(dep.name for dep in dependencies if dep.name in self.ignored)

        duration_ms = int((time.time() - start_time) * 1000)
        log_scan_complete(scan_id, duration_ms, len(files), len(unused))

        return AnalysisResult(
            dependencies=dependencies,
            used_identifiers=used,
            unused=unused,
            files_scanned=len(files),
            manifest_path=str(manifest_path),
            source_dir=str(source_root),
            scan_duration_ms=duration_ms,
            ignored=ignored,
        )


def get_dependency_analyzer(
    source_dir: Optional[str] = None,
    source_extension: Optional[str] = None,
    metadata_source: Optional[str] = None,
    ignored: Optional[Iterable[str]] = None,
) -> DependencyAnalyzer:
    """
    Factory function to create a dependency analyzer.

    Arguments left as None fall back to the loaded configuration.

    Returns:
        Configured DependencyAnalyzer instance
    """
    config = get_config()

    return DependencyAnalyzer(
        source_dir=source_dir or config.scan.source_dir,
        source_extension=source_extension or config.scan.source_extension,
        metadata_source=metadata_source or config.scan.metadata_source,
        macro_allowlist=build_macro_allowlist(config.scan.macro_crates),
        ignored=list(ignored) if ignored is not None else config.report.ignored,
    )
