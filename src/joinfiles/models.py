"""
Exceptions and plain data records shared by the walker, filters and writer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional


# Exceptions
class JoinfilesError(Exception):
    """Base exception for joinfiles errors."""


class InvalidRootError(JoinfilesError):
    """Raised when the root directory is missing or not a directory."""


class ConfigFileError(JoinfilesError):
    """Raised when a pattern file cannot be read."""


class OutputError(JoinfilesError):
    """Raised when the output file cannot be written."""


# Diagnostic kinds
UNREADABLE_DIR = "unreadable-dir"
UNREADABLE_FILE = "unreadable-file"
BINARY = "binary"
SYMLINK_LOOP = "symlink-loop"
ALREADY_VISITED = "already-visited"


@dataclass(frozen=True)
class TraversalConfig:
    root: Path
    max_depth: Optional[int] = None
    follow_symlinks: bool = False
    include_hidden: bool = False

    def __post_init__(self):
        if self.max_depth is not None and self.max_depth < 0:
            raise ValueError(f"max_depth must be non-negative, got {self.max_depth}")


@dataclass(frozen=True)
class PathRecord:
    """
    One entry found by the walker.

    ``relative_path`` always uses ``/`` separators and ``depth`` is the
    number of segments in it (a direct child of the root has depth 1).
    """

    absolute_path: Path
    relative_path: str
    is_dir: bool
    depth: int


@dataclass(frozen=True)
class Diagnostic:
    """A non-fatal problem met during a run (see the *_DIR/*_FILE kinds above)."""

    kind: str
    path: str
    reason: str


@dataclass(frozen=True)
class FileEntry:
    relative_path: str
    absolute_path: Path
    content: str
    size: int


@dataclass
class ScanResult:
    """
    Report returned by :func:`joinfiles.core.collect`.
    """

    entries: List[FileEntry] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)
    files_found: int = 0
    files_rejected: int = 0

    def skipped(self, kind: str) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.kind == kind]
