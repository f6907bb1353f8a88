"""
Core logic for joinfiles: pattern sources, collection and output writing.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

from .classify import Binary, ClassificationResult, ReadError, Text, classify
from .filters import FilterRules, accept
from .models import (
    BINARY,
    UNREADABLE_FILE,
    ConfigFileError,
    Diagnostic,
    FileEntry,
    OutputError,
    PathRecord,
    ScanResult,
    TraversalConfig,
)
from .walker import walk

logger = logging.getLogger(__name__)

Classifier = Callable[[Path], ClassificationResult]

# Defaults & helpers
DEFAULT_OUTPUT = "concatenated.txt"
DEFAULT_EXCLUDE_DIRS: List[str] = [
    "node_modules",
    "__pycache__",
]
HEADER = "// FILE: {path}"
SIZED_HEADER = "// FILE: {path} ({size} bytes)"
FOOTER = "// END FILE: {path}"


def _pattern_lines(lines: Iterable[str]) -> List[str]:
    return [ln.strip() for ln in lines if ln.strip() and not ln.lstrip().startswith("#")]


def default_workers() -> int:
    return min(32, (os.cpu_count() or 1) + 4)


# Ignore-file utilities
def load_gitignore(root: Path) -> List[str]:
    """Return the patterns of ``<root>/.gitignore``, or nothing if absent."""
    gitignore_path = Path(root) / ".gitignore"
    if not gitignore_path.is_file():
        return []
    try:
        with gitignore_path.open("r", encoding="utf-8") as fh:
            return _pattern_lines(fh)
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("ignoring unreadable %s: %s", gitignore_path, e)
        return []


def load_extra_patterns(config_path: Path) -> List[str]:
    if not config_path.exists():
        raise ConfigFileError(f"Config file '{config_path}' does not exist")
    if not config_path.is_file():
        raise ConfigFileError(f"'{config_path}' is not a file")
    try:
        with config_path.open("r", encoding="utf-8") as fh:
            return _pattern_lines(fh)
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigFileError(f"Could not read config file '{config_path}': {e}")


# Collection
def _to_entry(record: PathRecord, result: ClassificationResult, diagnostics: List[Diagnostic]):
    rel = record.relative_path
    if isinstance(result, Text):
        return FileEntry(rel, record.absolute_path, result.content, result.size)
    if isinstance(result, Binary):
        logger.debug("skipping binary %s (%s)", rel, result.reason)
        diagnostics.append(Diagnostic(BINARY, rel, result.reason))
    elif isinstance(result, ReadError):
        logger.warning("could not read %s: %s", rel, result.reason)
        diagnostics.append(Diagnostic(UNREADABLE_FILE, rel, result.reason))
    else:
        raise TypeError(f"classifier returned {type(result).__name__} for {rel}")
    return None


def _classify_one(classifier: Classifier, path: Path) -> ClassificationResult:
    try:
        return classifier(path)
    except OSError as e:
        return ReadError(e.strerror or str(e))


def collect(
    config: TraversalConfig,
    rules: FilterRules,
    *,
    classifier: Classifier = classify,
    workers: Optional[int] = None,
    skip_paths: Iterable[Path] = (),
) -> ScanResult:
    """
    Walk, filter and classify; return the text files sorted by relative path.

    Classification runs on a thread pool of *workers* threads (``1`` runs
    inline). Results are keyed by relative path and sorted afterwards, so
    the outcome does not depend on the order in which workers finish.
    """
    summary = ScanResult()
    skip = {Path(p) for p in skip_paths}
    walk_diagnostics: List[Diagnostic] = []

    candidates: List[PathRecord] = []
    for record in walk(config, rules, walk_diagnostics):
        if record.is_dir:
            continue
        summary.files_found += 1
        if record.absolute_path in skip or not accept(record, rules):
            summary.files_rejected += 1
            continue
        candidates.append(record)

    results: Dict[str, ClassificationResult] = {}
    by_rel = {r.relative_path: r for r in candidates}
    workers = workers or default_workers()
    if workers == 1 or len(candidates) < 2:
        for record in candidates:
            results[record.relative_path] = _classify_one(classifier, record.absolute_path)
    else:
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="classify") as executor:
            future_to_rel = {
                executor.submit(_classify_one, classifier, r.absolute_path): r.relative_path
                for r in candidates
            }
            for future in as_completed(future_to_rel):
                results[future_to_rel[future]] = future.result()

    file_diagnostics: List[Diagnostic] = []
    for rel in sorted(results):
        entry = _to_entry(by_rel[rel], results[rel], file_diagnostics)
        if entry is not None:
            summary.entries.append(entry)

    summary.diagnostics = walk_diagnostics + file_diagnostics
    logger.debug(
        "%d files found, %d rejected, %d kept",
        summary.files_found,
        summary.files_rejected,
        len(summary.entries),
    )
    return summary


# Main writer
def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


def format_entry(entry: FileEntry, show_size: bool = False, footer: bool = False) -> str:
    if show_size:
        header = SIZED_HEADER.format(path=entry.relative_path, size=entry.size)
    else:
        header = HEADER.format(path=entry.relative_path)
    parts = [header, "\n", entry.content]
    if not entry.content.endswith("\n"):
        parts.append("\n")
    if footer:
        parts.append(FOOTER.format(path=entry.relative_path) + "\n")
    parts.append("\n")
    return "".join(parts)


def write_file_list(
    entries: List[FileEntry],
    out_path: Path,
    *,
    show_size: bool = False,
    footer: bool = False,
    append: bool = False,
) -> int:
    """
    Write every entry under its header to *out_path*; return bytes written.

    The file is assembled next to *out_path* and moved into place once
    complete, so an interrupted run leaves the previous file untouched. An
    existing file keeps its permissions; a new one gets the umask default.
    """
    try:
        out_path = Path(out_path).resolve()
    except (OSError, RuntimeError) as e:
        raise OutputError(f"Could not resolve output path '{out_path}': {e}")

    out_dir = out_path.parent
    if not out_dir.exists():
        try:
            out_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise OutputError(f"Could not create output directory '{out_dir}': {e}")

    bytes_written = 0
    tmp_name = None
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{out_path.name}.", suffix=".tmp", dir=out_dir)
        os.close(fd)
        existed = out_path.exists()
        if append and existed:
            shutil.copyfile(out_path, tmp_name)
        mode = "a" if append else "w"
        with open(tmp_name, mode, encoding="utf-8", newline="\n") as out_fh:
            for entry in entries:
                chunk = format_entry(entry, show_size=show_size, footer=footer)
                out_fh.write(chunk)
                bytes_written += len(chunk.encode("utf-8"))
        if existed:
            shutil.copymode(out_path, tmp_name)
        else:
            os.chmod(tmp_name, 0o666 & ~_current_umask())
        os.replace(tmp_name, out_path)
        tmp_name = None
    except OSError as e:
        raise OutputError(f"Could not write to output file '{out_path}': {e}")
    finally:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)

    return bytes_written
