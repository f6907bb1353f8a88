"""
Text-vs-binary classification of file contents.

:func:`classify` is the single entry point the pipeline calls. Any callable
taking a path and returning one of :class:`Text`, :class:`Binary` or
:class:`ReadError` can stand in for it (see ``collect(classifier=...)``).
"""

from __future__ import annotations

import codecs
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)

DEFAULT_PREFIX_SIZE = 8192
DEFAULT_CONTROL_THRESHOLD = 0.30
DEFAULT_ENCODING = "utf-8"

# BEL, BS, TAB, LF, FF, CR, ESC show up in real text files
_TEXT_CONTROLS = frozenset({7, 8, 9, 10, 12, 13, 27})
_CONTROL_BYTES = frozenset(b for b in range(0x20) if b not in _TEXT_CONTROLS) | {0x7F}


@dataclass(frozen=True)
class Text:
    content: str
    size: int


@dataclass(frozen=True)
class Binary:
    reason: str


@dataclass(frozen=True)
class ReadError:
    reason: str


ClassificationResult = Union[Text, Binary, ReadError]


def looks_binary(
    data: bytes, control_threshold: float = DEFAULT_CONTROL_THRESHOLD
) -> Optional[str]:
    """Return why *data* looks binary, or ``None`` if it could be text."""
    if not data:
        return None
    if b"\0" in data:
        return "contains NUL byte"
    controls = sum(1 for b in data if b in _CONTROL_BYTES)
    ratio = controls / len(data)
    if ratio > control_threshold:
        return f"{ratio:.0%} control bytes"
    return None


def classify(
    path: Path,
    *,
    prefix_size: int = DEFAULT_PREFIX_SIZE,
    control_threshold: float = DEFAULT_CONTROL_THRESHOLD,
    encoding: str = DEFAULT_ENCODING,
) -> ClassificationResult:
    """
    Sniff the first *prefix_size* bytes of *path* and load it if it is text.

    A file is :class:`Binary` when the prefix holds a NUL byte, when more
    than *control_threshold* of the prefix is control bytes, or when the
    content is not valid *encoding*. Undecodable bytes are never replaced;
    when in doubt the file is skipped. I/O failures give :class:`ReadError`.
    """
    try:
        with open(path, "rb") as fh:
            prefix = fh.read(prefix_size)
            reason = looks_binary(prefix, control_threshold)
            if reason:
                return Binary(reason)
            try:
                # a multi-byte sequence may straddle the prefix boundary
                codecs.getincrementaldecoder(encoding)("strict").decode(prefix)
            except UnicodeDecodeError as e:
                return Binary(f"not valid {encoding}: {e.reason}")
            raw = prefix + fh.read()
    except OSError as e:
        logger.debug("could not read %s: %s", path, e)
        return ReadError(e.strerror or str(e))

    try:
        text = raw.decode(encoding)
    except UnicodeDecodeError as e:
        return Binary(f"not valid {encoding}: {e.reason}")
    return Text(text, len(raw))
