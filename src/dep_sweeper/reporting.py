"""
Reporting and output formatting for dependency analysis results.

The text report is plain and stable so it can be diffed between runs.
"""

import json
from typing import TYPE_CHECKING, AbstractSet, Any, Dict, Iterable, List, Optional, Sequence

import click
from rich.console import Console

from .dependency import Dependency
from .naming import is_declared_name_used

if TYPE_CHECKING:
    from .analyzer import AnalysisResult

REPORT_TITLE = "Dependency Analysis Report:"
REPORT_RULE = "=========================="
UNUSED_MARKER = "POTENTIALLY UNUSED"
REMOVAL_WARNING = "⚠️  This dependency might be removable. Verify:"

REMEDIATION_HINTS = (
    "Check for macro usage",
    "Look for #[derive(...)] usage",
    "Review build.rs dependencies",
    "Check conditional compilation flags",
)


def find_unused_dependencies(
    dependencies: Iterable[Dependency],
    used: AbstractSet[str],
    ignored: Iterable[str] = (),
) -> List[Dependency]:
    """Declared dependencies whose name, in either form, was never seen."""
    ignored_names = set(ignored)
    return [
        dep
        for dep in dependencies
        if dep.name not in ignored_names and not is_declared_name_used(dep.name, used)
    ]


def format_features(features: Sequence[str]) -> str:
    """Render features as a debug-style array: [] or ["a", "b"]."""
    return "[" + ", ".join(json.dumps(f, ensure_ascii=False) for f in features) + "]"


def format_unused_entry(dep: Dependency) -> List[str]:
    lines = [
        "",
        f"{dep.name} ({UNUSED_MARKER})",
        f"Version: {dep.version}",
        f"Feature flags: {format_features(dep.features)}",
        REMOVAL_WARNING,
    ]
    lines.extend(f"  {i}. {hint}" for i, hint in enumerate(REMEDIATION_HINTS, 1))
    return lines


def render_text_report(unused: Iterable[Dependency]) -> str:
    """
    Render the plain-text report.

    Args:
        unused: Flagged dependencies, in the order they should be printed

    Returns:
        str: Header followed by one block per flagged dependency
    """
    lines = ["", REPORT_TITLE, REPORT_RULE]
    for dep in unused:
        lines.extend(format_unused_entry(dep))
    return "\n".join(lines) + "\n"


def build_json_report(result: "AnalysisResult") -> Dict[str, Any]:
    """Export analysis results as a JSON-serializable document."""
    unused_names = {dep.name for dep in result.unused}
    return {
        "manifest_path": result.manifest_path,
        "source_dir": result.source_dir,
        "files_scanned": result.files_scanned,
        "total_dependencies": len(result.dependencies),
        "scan_duration_ms": result.scan_duration_ms,
        "summary": {
            "unused": len(result.unused),
            "used": len(result.dependencies) - len(result.unused) - len(result.ignored),
            "ignored": len(result.ignored),
        },
        "unused": [
            {
                "name": dep.name,
                "status": UNUSED_MARKER,
                "version": dep.version,
                "features": list(dep.features),
                "kind": dep.kind,
                "optional": dep.optional,
                "hints": list(REMEDIATION_HINTS),
            }
            for dep in result.unused
        ],
        "used": [
            dep.name
            for dep in result.dependencies
            if dep.name not in unused_names and dep.name not in result.ignored
        ],
    }


class DependencyReporter:
    """Writes analysis results to stdout or a file."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console(stderr=True)

    def emit(self, content: str, output_file: Optional[str] = None) -> None:
        if output_file:
            with open(output_file, "w", encoding="utf-8") as f:
                f.write(content)
            self.console.print(
                f"✅ Results saved to {output_file}", style="green", markup=False
            )
        else:
            click.echo(content, nl=False)

    def print_text_report(
        self, result: "AnalysisResult", output_file: Optional[str] = None
    ) -> None:
        self.emit(render_text_report(result.unused), output_file)

    def print_json_report(
        self, result: "AnalysisResult", output_file: Optional[str] = None
    ) -> None:
        json_output = json.dumps(build_json_report(result), indent=2, ensure_ascii=False)
        self.emit(json_output + "\n", output_file)

    def print_summary(self, result: "AnalysisResult") -> None:
        """Print a one-line summary on the status console."""
        duration_seconds = result.scan_duration_ms / 1000
        style = "yellow" if result.unused else "green"
        self.console.print(
            f"Scanned {result.files_scanned} source files against "
            f"{len(result.dependencies)} dependencies in {duration_seconds:.2f} seconds: "
            f"{len(result.unused)} potentially unused",
            style=style,
            soft_wrap=True,
        )
