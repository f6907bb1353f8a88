"""
Include/exclude rules and the ordered accept pipeline.

Every pattern list is compiled into a :class:`pathspec.GitIgnoreSpec`
(``.gitignore`` semantics) and matched against the path relative to the
traversal root, always with ``/`` separators:

* ``*`` and ``?`` never cross a ``/``; ``**`` does.
* a pattern without a slash (``*.rs``) matches at any depth,
  a pattern with one (``src/*.rs``) is anchored at the root.
* matching is case-sensitive regardless of the host filesystem.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import FrozenSet, Iterable, Tuple

import pathspec

from .models import PathRecord

logger = logging.getLogger(__name__)


def compile_patterns(patterns: Iterable[str]) -> "pathspec.GitIgnoreSpec":
    return pathspec.GitIgnoreSpec.from_lines(patterns)


def _normalise_extension(ext: str) -> str:
    return ext.strip().lstrip(".")


@dataclass(frozen=True)
class FilterRules:
    include_globs: Tuple[str, ...] = ()
    exclude_globs: Tuple[str, ...] = ()
    exclude_dirs: FrozenSet[str] = frozenset()
    exclude_extensions: FrozenSet[str] = frozenset()

    _include_spec: "pathspec.GitIgnoreSpec" = field(init=False, repr=False, compare=False)
    _exclude_spec: "pathspec.GitIgnoreSpec" = field(init=False, repr=False, compare=False)
    _dir_spec: "pathspec.GitIgnoreSpec" = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        # accept plain lists/sets from callers but keep the record immutable
        object.__setattr__(self, "include_globs", tuple(self.include_globs))
        object.__setattr__(self, "exclude_globs", tuple(self.exclude_globs))
        object.__setattr__(
            self, "exclude_dirs", frozenset(d.rstrip("/") for d in self.exclude_dirs)
        )
        object.__setattr__(
            self,
            "exclude_extensions",
            frozenset(_normalise_extension(e) for e in self.exclude_extensions),
        )
        object.__setattr__(self, "_include_spec", compile_patterns(self.include_globs))
        object.__setattr__(self, "_exclude_spec", compile_patterns(self.exclude_globs))
        object.__setattr__(
            self, "_dir_spec", compile_patterns(sorted(self.exclude_dirs))
        )

    def prunes(self, relative_dir: str) -> bool:
        """
        Return True when the walker must not descend into *relative_dir*.

        A directory is pruned when its name or relative path is listed in
        ``exclude_dirs``, or when an exclude glob matches the directory
        itself (which would reject every file below it anyway).
        """
        as_dir = relative_dir.rstrip("/") + "/"
        if self._dir_spec.match_file(as_dir):
            return True
        return bool(self.exclude_globs) and self._exclude_spec.match_file(as_dir)

    def excludes_extension(self, relative_path: str) -> bool:
        suffix = PurePosixPath(relative_path).suffix
        return bool(suffix) and suffix[1:] in self.exclude_extensions

    def excluded(self, relative_path: str) -> bool:
        return bool(self.exclude_globs) and self._exclude_spec.match_file(relative_path)

    def included(self, relative_path: str) -> bool:
        if not self.include_globs:
            return True
        return self._include_spec.match_file(relative_path)


def accept(record: PathRecord, rules: FilterRules) -> bool:
    """
    Decide whether *record* goes on to classification.

    Order is fixed: extension excludes, then exclude globs, then include
    globs. An excluded path is never brought back by an include pattern.
    """
    rel = record.relative_path
    if rules.excludes_extension(rel):
        logger.debug("rejected %s: excluded extension", rel)
        return False
    if rules.excluded(rel):
        logger.debug("rejected %s: exclude pattern", rel)
        return False
    if not rules.included(rel):
        logger.debug("rejected %s: no include pattern matched", rel)
        return False
    return True
