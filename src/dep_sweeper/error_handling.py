"""
Error handling for dep-sweeper.

Provides the exception taxonomy, structured error context, and a central
handler with callbacks so every collaborator reports failures the same way.
"""

import logging
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class AnalysisError(Exception):
    """Base class for failures that abort an analysis run."""


class MetadataError(AnalysisError):
    """Manifest missing, unparseable, or without a root package."""


class SourceTreeError(AnalysisError):
    """Source directory could not be walked or a file could not be read."""


class PatternError(AnalysisError):
    """A scan pattern failed to compile."""


class ErrorLevel(Enum):
    """Severity of a reported failure."""

    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ErrorCategory(Enum):
    """Which collaborator reported the failure."""

    METADATA = "METADATA"
    FILESYSTEM = "FILESYSTEM"
    PATTERN = "PATTERN"
    CONFIGURATION = "CONFIGURATION"


@dataclass
class ErrorContext:
    """One reported failure, with hints for the user."""

    level: ErrorLevel
    category: ErrorCategory
    message: str
    module: str
    function: str
    details: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[Exception] = None
    suggestions: List[str] = field(default_factory=list)

    @property
    def location(self) -> str:
        return f"{self.module}.{self.function}"


class ContextLogger:
    """Renders an ErrorContext as a single line on stderr."""

    def __init__(self, name: str, level: int = logging.WARNING):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)

        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(logging.Formatter(LOG_FORMAT))
            self.logger.addHandler(handler)

    def log_error_context(self, context: ErrorContext) -> None:
        parts = [f"[{context.category.value}] {context.message}", context.location]
        if context.details:
            parts.append(
                ", ".join(f"{key}={value}" for key, value in context.details.items())
            )
        if context.exception is not None:
            parts.append(type(context.exception).__name__)

        self.logger.log(getattr(logging, context.level.value), " | ".join(parts))


ErrorCallback = Callable[[ErrorContext], None]


class ErrorHandler:
    """
    Central sink for failures reported by the analysis collaborators.

    Every report is logged; registered callbacks (the CLI's suggestion
    printer in verbose mode) then see the same context.
    """

    def __init__(self, logger_name: str = "dep_sweeper.errors"):
        self.logger = ContextLogger(logger_name)
        self.category_callbacks: Dict[ErrorCategory, List[ErrorCallback]] = {}
        self.global_callbacks: List[ErrorCallback] = []

    def register_callback(
        self, callback: ErrorCallback, category: Optional[ErrorCategory] = None
    ) -> None:
        """
        Register a callback for one category, or for all when category is None.
        """
        if category is None:
            if callback not in self.global_callbacks:
                self.global_callbacks.append(callback)
        else:
            callbacks = self.category_callbacks.setdefault(category, [])
            if callback not in callbacks:
                callbacks.append(callback)

    def handle_error(
        self,
        level: ErrorLevel,
        category: ErrorCategory,
        message: str,
        module: str,
        function: str,
        exception: Optional[Exception] = None,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ) -> ErrorContext:
        context = ErrorContext(
            level=level,
            category=category,
            message=message,
            module=module,
            function=function,
            details=details or {},
            exception=exception,
            suggestions=suggestions or [],
        )

        self.logger.log_error_context(context)

        callbacks = self.category_callbacks.get(category, []) + self.global_callbacks
        for callback in callbacks:
            try:
                callback(context)
            except Exception as cb_error:
                # A failing callback must not mask the original error
                self.logger.logger.error(f"Error in callback: {cb_error}")

        return context

    def warning(
        self,
        category: ErrorCategory,
        message: str,
        module: str,
        function: str,
        **kwargs,
    ) -> ErrorContext:
        return self.handle_error(
            ErrorLevel.WARNING, category, message, module, function, **kwargs
        )

    def error(
        self,
        category: ErrorCategory,
        message: str,
        module: str,
        function: str,
        **kwargs,
    ) -> ErrorContext:
        return self.handle_error(
            ErrorLevel.ERROR, category, message, module, function, **kwargs
        )

    def critical(
        self,
        category: ErrorCategory,
        message: str,
        module: str,
        function: str,
        **kwargs,
    ) -> ErrorContext:
        return self.handle_error(
            ErrorLevel.CRITICAL, category, message, module, function, **kwargs
        )


_global_error_handler: Optional[ErrorHandler] = None


def get_error_handler() -> ErrorHandler:
    """Get the process-wide error handler, creating it on first use."""
    global _global_error_handler
    if _global_error_handler is None:
        _global_error_handler = ErrorHandler()
    return _global_error_handler


def log_metadata_error(
    message: str,
    module: str,
    function: str,
    manifest_path: Optional[str] = None,
    exception: Optional[Exception] = None,
):
    """
    Convenience function for logging manifest metadata errors.

    Args:
        message: Error message
        module: Module name
        function: Function name
        manifest_path: Manifest being read
        exception: Optional exception
    """
    details = {}
    if manifest_path is not None:
        details["manifest"] = Path(manifest_path).name

    suggestions = [
        "Check that Cargo.toml exists and is valid TOML",
        "Run the tool from the crate root or pass --manifest-path",
        "Virtual workspace manifests have no root package; point at a member crate",
    ]

    get_error_handler().error(
        ErrorCategory.METADATA,
        message,
        module,
        function,
        details=details,
        exception=exception,
        suggestions=suggestions,
    )


def log_filesystem_error(
    message: str,
    module: str,
    function: str,
    path: Optional[str] = None,
    exception: Optional[Exception] = None,
):
    """
    Convenience function for logging source tree errors.

    Args:
        message: Error message
        module: Module name
        function: Function name
        path: File or directory that failed
        exception: Optional exception
    """
    details = {}
    if path is not None:
        details["path"] = str(path)

    suggestions = [
        "Check that the source directory exists",
        "Verify read permissions on the source tree",
        "Source files must be valid UTF-8",
    ]

    get_error_handler().error(
        ErrorCategory.FILESYSTEM,
        message,
        module,
        function,
        details=details,
        exception=exception,
        suggestions=suggestions,
    )
