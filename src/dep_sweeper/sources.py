"""
Source tree traversal.

Every failure is fatal: an unreadable file would otherwise hide usages and
turn a used crate into a false removal candidate.
"""

import os
from pathlib import Path
from typing import Iterator, List, Union

from .error_handling import SourceTreeError, log_filesystem_error


def _raise_walk_error(error: OSError) -> None:
    log_filesystem_error(
        f"Cannot traverse source tree: {error}",
        "sources",
        "iter_source_files",
        path=error.filename,
        exception=error,
    )
    raise SourceTreeError(f"Cannot traverse {error.filename}: {error.strerror}")


def iter_source_files(
    root: Union[str, Path], extension: str = ".rs"
) -> Iterator[Path]:
    """
    Yield source files below root with the given extension.

    Directories and files are visited in sorted order so repeated runs
    produce identical reports.

    Raises:
        SourceTreeError: If root is missing or a directory cannot be listed
    """
    root_path = Path(root)
    if not root_path.is_dir():
        log_filesystem_error(
            "Source directory does not exist",
            "sources",
            "iter_source_files",
            path=str(root_path),
        )
        raise SourceTreeError(f"Source directory does not exist: {root_path}")

    for dirpath, dirnames, filenames in os.walk(root_path, onerror=_raise_walk_error):
        dirnames.sort()
        for filename in sorted(filenames):
            if filename.endswith(extension):
                yield Path(dirpath) / filename


def list_source_files(root: Union[str, Path], extension: str = ".rs") -> List[Path]:
    """Collect the whole listing up front so traversal errors surface before scanning."""
    return list(iter_source_files(root, extension))


def read_source_file(path: Union[str, Path]) -> str:
    """
    Read one source file as UTF-8.

    Raises:
        SourceTreeError: If the file cannot be read or decoded
    """
    try:
        with open(path, encoding="utf-8") as f:
            return f.read()
    except UnicodeDecodeError as e:
        log_filesystem_error(
            "Source file is not valid UTF-8",
            "sources",
            "read_source_file",
            path=str(path),
            exception=e,
        )
        raise SourceTreeError(f"File contains invalid UTF-8: {path}")
    except OSError as e:
        log_filesystem_error(
            f"Cannot read source file: {e}",
            "sources",
            "read_source_file",
            path=str(path),
            exception=e,
        )
        raise SourceTreeError(f"Error reading file {path}: {e}")
