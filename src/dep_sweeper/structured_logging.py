"""
Structured logging configuration for dep-sweeper.

Emits machine-readable JSON events on stderr so that stdout carries only
the dependency report.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

_RESERVED_RECORD_KEYS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
    "getMessage",
    "exc_info",
    "exc_text",
    "stack_info",
}


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "component": getattr(record, "component", record.name),
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_KEYS:
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


class AnalysisLogger:
    """Structured logger for analysis events."""

    def __init__(self, name: str = "dep_sweeper"):
        self.logger = logging.getLogger(f"dep_sweeper.{name}")
        self.logger.propagate = False
        self._setup_logger()
        self.scan_context: Dict[str, Any] = {}

    def _setup_logger(self) -> None:
        """Setup logger with structured formatting."""
        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(StructuredFormatter())
            self.logger.addHandler(handler)
            self.logger.setLevel(logging.WARNING)

    def set_scan_context(
        self,
        scan_id: Optional[str] = None,
        manifest_path: Optional[str] = None,
        total_dependencies: Optional[int] = None,
    ) -> None:
        """Set scan context for logging."""
        self.scan_context = {}
        if scan_id:
            self.scan_context["scan_id"] = scan_id
        if manifest_path:
            self.scan_context["manifest_path"] = manifest_path
        if total_dependencies is not None:
            self.scan_context["total_dependencies"] = total_dependencies

    def clear_scan_context(self) -> None:
        """Clear scan context."""
        self.scan_context.clear()

    def _log(self, level: str, event_type: str, **kwargs) -> None:
        log_data = {"event_type": event_type, **self.scan_context, **kwargs}
        getattr(self.logger, level)(event_type, extra=log_data)

    def info(self, event_type: str, **kwargs) -> None:
        """Log info level event."""
        self._log("info", event_type, **kwargs)

    def warning(self, event_type: str, **kwargs) -> None:
        """Log warning level event."""
        self._log("warning", event_type, **kwargs)

    def debug(self, event_type: str, **kwargs) -> None:
        """Log debug level event."""
        self._log("debug", event_type, **kwargs)


# Global logger instances
_scanner_logger = AnalysisLogger("scanner")
_manifest_logger = AnalysisLogger("manifest")

_ALL_LOGGERS = (_scanner_logger, _manifest_logger)


def get_scanner_logger() -> AnalysisLogger:
    """Get source scanning logger."""
    return _scanner_logger


def get_manifest_logger() -> AnalysisLogger:
    """Get manifest metadata logger."""
    return _manifest_logger


def log_scan_start(scan_id: str, manifest_path: str, total_dependencies: int) -> None:
    """Log scan start event."""
    logger = get_scanner_logger()
    logger.set_scan_context(scan_id, manifest_path, total_dependencies)
    logger.info(
        "scan_started",
        scan_id=scan_id,
        manifest_path=manifest_path,
        total_dependencies=total_dependencies,
    )


def log_source_scanned(path: str, identifiers_found: int) -> None:
    """Log a single scanned source file."""
    get_scanner_logger().debug(
        "source_scanned", source_path=path, identifiers_found=identifiers_found
    )


def log_dependencies_loaded(
    manifest_path: str, metadata_source: str, total_dependencies: int
) -> None:
    """Log the outcome of reading manifest metadata."""
    get_manifest_logger().info(
        "dependencies_loaded",
        manifest_path=manifest_path,
        metadata_source=metadata_source,
        total_dependencies=total_dependencies,
    )


def log_scan_complete(
    scan_id: str,
    duration_ms: int,
    files_scanned: int,
    unused_count: int,
) -> None:
    """Log scan completion event."""
    logger = get_scanner_logger()
    log_data = {
        "scan_id": scan_id,
        "scan_duration_ms": duration_ms,
        "files_scanned": files_scanned,
        "unused_dependencies": unused_count,
    }
    if unused_count:
        logger.warning("scan_completed", **log_data)
    else:
        logger.info("scan_completed", **log_data)
    logger.clear_scan_context()


def clear_scan_context() -> None:
    """Clear global scan context."""
    for logger in _ALL_LOGGERS:
        logger.clear_scan_context()


def configure_logging(log_level: str = "WARNING") -> None:
    """Configure logging for the application."""
    level = getattr(logging, log_level.upper(), logging.WARNING)

    for logger in _ALL_LOGGERS:
        logger.logger.setLevel(level)
