import json
import subprocess
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import toml

from .dependency import Dependency
from .error_handling import MetadataError, log_metadata_error
from .structured_logging import get_manifest_logger, log_dependencies_loaded

DEPENDENCY_SECTIONS = {
    "dependencies": "normal",
    "dev-dependencies": "dev",
    "build-dependencies": "build",
}

METADATA_SOURCES = ("toml", "cargo")


def _validate_manifest_path(manifest_path: str) -> Path:
    path = Path(manifest_path)
    if not path.is_file():
        log_metadata_error(
            "Manifest does not exist",
            "manifest",
            "_validate_manifest_path",
            manifest_path=manifest_path,
        )
        raise MetadataError(f"Manifest does not exist: {path}")
    return path.resolve()


def _dependency_from_table(
    key: str, spec: Any, kind: str, source_file: str
) -> Dependency:
    """
    Build a Dependency from one manifest entry.

    Handles both `foo = "1.0"` and `foo = { version = "1.0", features = [...] }`.
    A renamed entry (`package = "..."`) is reported under its package name.
    """
    if isinstance(spec, str):
        return Dependency(name=key, version=spec, kind=kind, source_file=source_file)

    if not isinstance(spec, dict):
        raise MetadataError(f"Unsupported dependency specification for '{key}'")

    return Dependency(
        name=spec.get("package", key),
        version=str(spec.get("version", "*")),
        features=tuple(spec.get("features", ())),
        kind=kind,
        optional=bool(spec.get("optional", False)),
        source_file=source_file,
    )


def _iter_dependency_tables(data: Dict[str, Any]) -> Iterable[tuple]:
    for section, kind in DEPENDENCY_SECTIONS.items():
        yield data.get(section, {}), kind

    # [target.'cfg(unix)'.dependencies] and friends
    for target_data in data.get("target", {}).values():
        if isinstance(target_data, dict):
            for section, kind in DEPENDENCY_SECTIONS.items():
                yield target_data.get(section, {}), kind


def parse_cargo_toml(manifest_path: str) -> List[Dependency]:
    """
    Parses a Cargo.toml file and returns the root package's dependencies.

    Args:
        manifest_path: Path to the Cargo.toml file

    Returns:
        List[Dependency]: Declared dependencies in manifest order

    Raises:
        MetadataError: If the file is missing, invalid TOML, or a virtual manifest
    """
    path = _validate_manifest_path(manifest_path)

    try:
        with open(path, encoding="utf-8") as f:
            data = toml.load(f)
    except toml.TomlDecodeError as e:
        log_metadata_error(
            f"Invalid TOML format in manifest: {e}",
            "manifest",
            "parse_cargo_toml",
            manifest_path=manifest_path,
            exception=e,
        )
        raise MetadataError(f"Invalid TOML format: {e}")
    except (OSError, UnicodeDecodeError) as e:
        log_metadata_error(
            f"Error reading manifest: {e}",
            "manifest",
            "parse_cargo_toml",
            manifest_path=manifest_path,
            exception=e,
        )
        raise MetadataError(f"Error reading manifest: {e}")

    if "package" not in data:
        log_metadata_error(
            "Manifest has no [package] section",
            "manifest",
            "parse_cargo_toml",
            manifest_path=manifest_path,
        )
        raise MetadataError(f"No root package found in {path}")

    dependencies = []
    for table, kind in _iter_dependency_tables(data):
        if not isinstance(table, dict):
            continue
        for key, spec in table.items():
            dependencies.append(_dependency_from_table(key, spec, kind, str(path)))

    return dependencies


def _run_cargo_metadata(path: Path) -> Dict[str, Any]:
    command = [
        "cargo",
        "metadata",
        "--format-version",
        "1",
        "--no-deps",
        "--manifest-path",
        str(path),
    ]
    try:
        completed = subprocess.run(
            command, capture_output=True, text=True, check=True
        )
    except FileNotFoundError as e:
        log_metadata_error(
            "cargo executable not found",
            "manifest",
            "load_cargo_metadata",
            manifest_path=str(path),
            exception=e,
        )
        raise MetadataError("cargo executable not found on PATH")
    except subprocess.CalledProcessError as e:
        log_metadata_error(
            f"cargo metadata failed: {e.stderr.strip()}",
            "manifest",
            "load_cargo_metadata",
            manifest_path=str(path),
            exception=e,
        )
        raise MetadataError(f"cargo metadata failed: {e.stderr.strip()}")

    try:
        return json.loads(completed.stdout)
    except json.JSONDecodeError as e:
        raise MetadataError(f"cargo metadata produced invalid JSON: {e}")


def _find_root_package(metadata: Dict[str, Any], path: Path) -> Optional[Dict[str, Any]]:
    resolve = metadata.get("resolve") or {}
    root_id = resolve.get("root")
    for package in metadata.get("packages", []):
        if root_id is not None and package.get("id") == root_id:
            return package
        if Path(package.get("manifest_path", "")).resolve() == path:
            return package
    return None


def load_cargo_metadata(manifest_path: str) -> List[Dependency]:
    """
    Read dependencies through `cargo metadata`.

    Raises:
        MetadataError: If cargo fails or no root package can be resolved
    """
    path = _validate_manifest_path(manifest_path)
    metadata = _run_cargo_metadata(path)

    package = _find_root_package(metadata, path)
    if package is None:
        log_metadata_error(
            "cargo metadata returned no root package",
            "manifest",
            "load_cargo_metadata",
            manifest_path=manifest_path,
        )
        raise MetadataError(f"No root package found in {path}")

    return [
        Dependency(
            name=dep["name"],
            version=dep.get("req", "*"),
            features=tuple(dep.get("features", ())),
            kind=dep.get("kind") or "normal",
            optional=bool(dep.get("optional", False)),
            source_file=str(path),
        )
        for dep in package.get("dependencies", [])
    ]


def dedupe_dependencies(dependencies: Iterable[Dependency]) -> List[Dependency]:
    """Keep the first declaration of every canonical name."""
    seen = {}
    for dep in dependencies:
        if dep.name in seen:
            get_manifest_logger().debug(
                "duplicate_dependency_skipped", package_name=dep.name, kind=dep.kind
            )
            continue
        seen[dep.name] = dep
    return list(seen.values())


def load_dependencies(manifest_path: str, source: str = "toml") -> List[Dependency]:
    """
    Load the root package's dependencies from the chosen metadata source.

    Args:
        manifest_path: Path to Cargo.toml
        source: "toml" to parse the file directly, "cargo" to ask cargo

    Returns:
        List[Dependency]: Unique declared dependencies in declaration order
    """
    loaders = {
        "toml": parse_cargo_toml,
        "cargo": load_cargo_metadata,
    }
    loader = loaders.get(source)
    if loader is None:
        raise MetadataError(f"Unknown metadata source: {source}")

    dependencies = dedupe_dependencies(loader(manifest_path))
    log_dependencies_loaded(manifest_path, source, len(dependencies))
    return dependencies
