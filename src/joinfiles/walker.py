"""
Directory traversal.

:func:`walk` lists each directory with :func:`os.scandir`, sorts entries by
name and decides per entry whether to skip it, emit it, or descend into it.
Pruned directories (hidden, excluded, too deep, already visited) are never
listed at all.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import FrozenSet, Iterator, List, Optional, Set, Tuple

from .filters import FilterRules
from .models import (
    ALREADY_VISITED,
    SYMLINK_LOOP,
    UNREADABLE_DIR,
    Diagnostic,
    InvalidRootError,
    PathRecord,
    TraversalConfig,
)

logger = logging.getLogger(__name__)

HIDDEN_PREFIX = "."

_Identity = Tuple[int, int]


def is_hidden(name: str) -> bool:
    return name.startswith(HIDDEN_PREFIX)


def resolve_root(root: Path) -> Path:
    try:
        resolved = Path(root).resolve()
    except (OSError, RuntimeError) as e:
        raise InvalidRootError(f"Could not resolve root path '{root}': {e}")
    if not resolved.exists():
        raise InvalidRootError(f"Root directory '{root}' does not exist")
    if not resolved.is_dir():
        raise InvalidRootError(f"Root path '{root}' is not a directory")
    return resolved


def _identity(path: str) -> Optional[_Identity]:
    try:
        st = os.stat(path)
    except OSError:
        return None
    return st.st_dev, st.st_ino


def walk(
    config: TraversalConfig,
    rules: Optional[FilterRules] = None,
    diagnostics: Optional[List[Diagnostic]] = None,
) -> Iterator[PathRecord]:
    """
    Yield a :class:`PathRecord` for every reachable entry under ``config.root``.

    The root is validated right away, so :class:`InvalidRootError` is raised
    by the call itself rather than on first iteration. Directories are
    yielded (``is_dir=True``) before their contents. Non-fatal problems are
    appended to *diagnostics* when a list is given.
    """
    root = resolve_root(config.root)
    visited: Set[_Identity] = set()
    ancestors: FrozenSet[_Identity] = frozenset()
    if config.follow_symlinks:
        root_id = _identity(str(root))
        if root_id is not None:
            visited.add(root_id)
            ancestors = frozenset({root_id})
    sink = diagnostics if diagnostics is not None else []
    return _walk_dir(str(root), "", 0, config, rules, visited, ancestors, sink)


def _walk_dir(
    path: str,
    rel: str,
    depth: int,
    config: TraversalConfig,
    rules: Optional[FilterRules],
    visited: Set[_Identity],
    ancestors: FrozenSet[_Identity],
    diagnostics: List[Diagnostic],
) -> Iterator[PathRecord]:
    child_depth = depth + 1
    if config.max_depth is not None and child_depth > config.max_depth:
        return

    try:
        with os.scandir(path) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError as e:
        where = rel or "."
        logger.warning("cannot read directory %s: %s", where, e.strerror or e)
        diagnostics.append(Diagnostic(UNREADABLE_DIR, where, e.strerror or str(e)))
        return

    for entry in entries:
        name = entry.name
        if not config.include_hidden and is_hidden(name):
            logger.debug("skipping hidden %s", name)
            continue

        child_rel = f"{rel}/{name}" if rel else name
        try:
            is_link = entry.is_symlink()
            is_dir = entry.is_dir()
        except OSError:
            is_link, is_dir = False, False

        if is_dir and rules is not None and rules.prunes(child_rel):
            logger.debug("pruned %s", child_rel)
            continue

        record = PathRecord(Path(entry.path), child_rel, is_dir, child_depth)

        if is_link and not config.follow_symlinks:
            yield record
            continue

        ident = _identity(entry.path) if config.follow_symlinks else None
        if ident is not None:
            if is_dir and ident in ancestors:
                logger.warning("not following %s: loops back to a parent", child_rel)
                diagnostics.append(Diagnostic(SYMLINK_LOOP, child_rel, "links to a parent directory"))
                continue
            if ident in visited and (is_dir or is_link):
                # hard-linked regular files are distinct paths and stay
                logger.debug("skipping %s: already visited", child_rel)
                diagnostics.append(Diagnostic(ALREADY_VISITED, child_rel, "target already listed"))
                continue
            visited.add(ident)

        yield record
        if is_dir:
            child_ancestors = ancestors | {ident} if ident is not None else ancestors
            yield from _walk_dir(
                entry.path, child_rel, child_depth, config, rules, visited, child_ancestors,
                diagnostics,
            )
