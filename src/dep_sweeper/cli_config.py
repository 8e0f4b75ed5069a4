"""
Configuration management for dep-sweeper.

Settings come from defaults, then the first config file found, then
environment variables. Command-line options override all of them.
"""

import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from rich.console import Console

from .error_handling import ErrorCategory, get_error_handler
from .macro_allowlist import DEFAULT_MACRO_CRATES
from .manifest import METADATA_SOURCES

console = Console(stderr=True)

OUTPUT_FORMATS = ("text", "json")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ScanConfig:
    """Source scanning configuration."""

    source_dir: str = "src"
    source_extension: str = ".rs"
    metadata_source: str = "toml"
    # name -> markers; null means default markers, [] removes a built-in rule
    macro_crates: Dict[str, Optional[List[str]]] = field(default_factory=dict)


@dataclass
class ReportConfig:
    """Report output configuration."""

    output_format: str = "text"
    output_file: Optional[str] = None
    ignored: List[str] = field(default_factory=list)
    fail_on_unused: bool = False


@dataclass
class LoggingConfig:
    """Logging configuration."""

    log_level: str = "WARNING"


@dataclass
class SweeperConfig:
    """Main configuration containing all subsections."""

    scan: ScanConfig = field(default_factory=ScanConfig)
    report: ReportConfig = field(default_factory=ReportConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


# Global configuration instance
_global_config: Optional[SweeperConfig] = None


def _is_string_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(item, str) for item in value)


def validate_config_values(config: SweeperConfig) -> List[str]:
    """
    Validate configuration values and return any errors.

    Wrong types are reported like wrong values so a bad config file never
    reaches the scanner.

    Returns:
        List[str]: List of validation errors (empty if valid)
    """
    errors = []
    scan = config.scan
    report = config.report

    if not isinstance(scan.source_dir, str) or not scan.source_dir:
        errors.append("scan.source_dir must be a non-empty string")
    extension = scan.source_extension
    if not isinstance(extension, str) or not extension.startswith("."):
        errors.append("scan.source_extension must be a string starting with '.'")
    if scan.metadata_source not in METADATA_SOURCES:
        errors.append(
            f"scan.metadata_source must be one of {', '.join(METADATA_SOURCES)}"
        )
    if not isinstance(scan.macro_crates, dict):
        errors.append("scan.macro_crates must be a mapping of crate name to markers")
    else:
        for name, markers in scan.macro_crates.items():
            if markers is not None and not _is_string_list(markers):
                errors.append(
                    f"scan.macro_crates.{name} must be a list of strings or null"
                )

    if report.output_format not in OUTPUT_FORMATS:
        errors.append(f"report.output_format must be one of {', '.join(OUTPUT_FORMATS)}")
    if report.output_file is not None and not isinstance(report.output_file, str):
        errors.append("report.output_file must be a string or null")
    if not _is_string_list(report.ignored):
        errors.append("report.ignored must be a list of strings")
    if not isinstance(report.fail_on_unused, bool):
        errors.append("report.fail_on_unused must be true or false")

    log_level = config.logging.log_level
    if not isinstance(log_level, str) or log_level.upper() not in LOG_LEVELS:
        errors.append(f"logging.log_level must be one of {', '.join(LOG_LEVELS)}")

    return errors


def load_config_file(config_path: Path) -> Optional[Dict[str, Any]]:
    """Load config from a JSON or YAML file."""
    if not config_path.exists():
        return None

    try:
        with open(config_path, encoding="utf-8") as f:
            if config_path.suffix.lower() in [".yaml", ".yml"]:
                return yaml.safe_load(f)
            elif config_path.suffix.lower() == ".json":
                return json.load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        get_error_handler().warning(
            ErrorCategory.CONFIGURATION,
            f"Error loading config: {e}",
            "cli_config",
            "load_config_file",
            exception=e,
            details={"config_file": config_path.name},
        )
        console.print(
            f"⚠️  Error loading config from {config_path}: {e}", style="yellow"
        )

    return None


def find_config_file() -> Optional[Path]:
    """Find config file in standard locations."""
    locations = [
        Path.cwd() / ".dep-sweeper.json",
        Path.cwd() / ".dep-sweeper.yaml",
        Path.cwd() / ".dep-sweeper.yml",
        Path.home() / ".config" / "dep-sweeper" / "config.json",
        Path.home() / ".config" / "dep-sweeper" / "config.yaml",
        Path.home() / ".dep-sweeper.json",
    ]

    for location in locations:
        if location.exists():
            return location

    return None


def load_environment_overrides(config: SweeperConfig) -> None:
    """Load environment variable overrides."""

    def get_env_bool(key: str, default: bool = False) -> bool:
        value = os.environ.get(key, "").lower()
        return value in ["true", "1", "yes", "on"] if value else default

    if source_dir := os.environ.get("DEP_SWEEPER_SOURCE_DIR"):
        config.scan.source_dir = source_dir
    if extension := os.environ.get("DEP_SWEEPER_EXTENSION"):
        config.scan.source_extension = extension
    if metadata_source := os.environ.get("DEP_SWEEPER_METADATA_SOURCE"):
        config.scan.metadata_source = metadata_source.lower()

    config.report.fail_on_unused = get_env_bool(
        "DEP_SWEEPER_FAIL_ON_UNUSED", config.report.fail_on_unused
    )
    if ignored := os.environ.get("DEP_SWEEPER_IGNORE"):
        config.report.ignored = [
            name.strip() for name in ignored.split(",") if name.strip()
        ]

    if log_level := os.environ.get("DEP_SWEEPER_LOG_LEVEL"):
        config.logging.log_level = log_level.upper()


def apply_config_section(
    config: Any, section_data: Dict[str, Any], section_name: str
) -> None:
    """Apply configuration from dictionary to config section."""
    for key, value in section_data.items():
        if hasattr(config, key):
            if isinstance(getattr(config, key), dict) and isinstance(value, dict):
                getattr(config, key).update(value)
            else:
                setattr(config, key, value)
        else:
            console.print(
                f"⚠️  Unknown config key in {section_name}: {key}", style="yellow"
            )


def apply_config_data(config: SweeperConfig, file_config: Dict[str, Any]) -> None:
    """Apply every known section of a loaded config document."""
    for section_name in ("scan", "report", "logging"):
        section_data = file_config.get(section_name)
        if isinstance(section_data, dict):
            apply_config_section(getattr(config, section_name), section_data, section_name)


def load_config() -> SweeperConfig:
    """Load configuration from file and environment."""
    global _global_config

    if _global_config is not None:
        return _global_config

    config = SweeperConfig()

    config_file = find_config_file()
    if config_file:
        file_config = load_config_file(config_file)
        if isinstance(file_config, dict):
            apply_config_data(config, file_config)

    load_environment_overrides(config)

    validation_errors = validate_config_values(config)
    if validation_errors:
        console.print("⚠️  Configuration validation errors:", style="red")
        for error in validation_errors:
            console.print(f"  • {error}", style="red")
        console.print("Using default values for invalid settings.", style="yellow")
        config = _reset_invalid_sections(config, validation_errors)

    _global_config = config
    return config


def _reset_invalid_sections(config: SweeperConfig, errors: List[str]) -> SweeperConfig:
    defaults = SweeperConfig()
    for section_name in ("scan", "report", "logging"):
        if any(error.startswith(f"{section_name}.") for error in errors):
            setattr(config, section_name, getattr(defaults, section_name))
    return config


def get_config() -> SweeperConfig:
    """Get the global configuration instance."""
    global _global_config
    if _global_config is None:
        _global_config = load_config()
    return _global_config


def reset_config() -> None:
    """Reset the global configuration (useful for testing)."""
    global _global_config
    _global_config = None


def create_sample_config() -> str:
    """Generate a sample configuration document."""
    sample = SweeperConfig()
    sample.scan.macro_crates = {name: None for name in DEFAULT_MACRO_CRATES}
    data = asdict(sample)
    return json.dumps(data, indent=2)
