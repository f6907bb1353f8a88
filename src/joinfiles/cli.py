"""
CLI entrypoint for joinfiles package.
"""
import argparse
import codecs
import functools
import logging
import sys
from pathlib import Path
from typing import List, Optional

from colorama import Fore, Style, init as colorama_init

from . import __version__
from .classify import (
    DEFAULT_CONTROL_THRESHOLD,
    DEFAULT_ENCODING,
    DEFAULT_PREFIX_SIZE,
    classify,
)
from .core import (
    DEFAULT_EXCLUDE_DIRS,
    DEFAULT_OUTPUT,
    collect,
    load_extra_patterns,
    load_gitignore,
    write_file_list,
)
from .filters import FilterRules
from .models import (
    ALREADY_VISITED,
    BINARY,
    SYMLINK_LOOP,
    UNREADABLE_DIR,
    UNREADABLE_FILE,
    JoinfilesError,
    ScanResult,
    TraversalConfig,
)
from .walker import resolve_root

colorama_init()

_REASON_LABELS = {
    BINARY: "binary",
    UNREADABLE_FILE: "unreadable file",
    UNREADABLE_DIR: "unreadable directory",
    SYMLINK_LOOP: "symlink loop",
    ALREADY_VISITED: "already listed",
}


def _say(msg: str, color: str = "") -> None:
    print(f"{color}[joinfiles] {msg}{Style.RESET_ALL if color else ''}")


def _err(msg: str) -> None:
    print(f"{Fore.RED}Error: {msg}{Style.RESET_ALL}", file=sys.stderr)


def _non_negative_int(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}")
    if n < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0, got {n}")
    return n


def _positive_int(value: str) -> int:
    n = _non_negative_int(value)
    if n == 0:
        raise argparse.ArgumentTypeError("must be >= 1")
    return n


def _ratio(value: str) -> float:
    try:
        f = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}")
    if not 0.0 <= f <= 1.0:
        raise argparse.ArgumentTypeError(f"must be between 0 and 1, got {f}")
    return f


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="joinfiles",
        description="Concatenate the text files of a directory tree into one annotated file.",
    )
    p.add_argument("--root", type=Path, default=Path("."), help="Project root dir")
    p.add_argument(
        "-o",
        "--out",
        type=Path,
        default=Path(DEFAULT_OUTPUT),
        help=f"Output file (default: {DEFAULT_OUTPUT})",
    )
    p.add_argument("-p", "--patterns", nargs="+", default=[], metavar="GLOB",
                   help="Only include files matching these globs (e.g. '*.py' '*.md')")
    p.add_argument("-x", "--exclude", nargs="+", default=[], metavar="GLOB",
                   help="Exclude files matching these globs")
    p.add_argument("-e", "--exclude-folders", nargs="+", default=[], metavar="DIR",
                   help="Directories to skip entirely")
    p.add_argument("--exclude-extensions", nargs="+", default=[], metavar="EXT",
                   help="File extensions to exclude (e.g. log png)")
    p.add_argument("--max-depth", type=_non_negative_int, help="Maximum search depth")
    p.add_argument("--hidden", action="store_true", help="Include hidden files and folders")
    p.add_argument("--follow-symlinks", action="store_true", help="Follow symbolic links")
    p.add_argument(
        "--config",
        type=Path,
        help="Path to a file with extra exclude patterns (one per line)",
    )
    p.add_argument("--no-gitignore", action="store_true", help="Do not read <root>/.gitignore")
    p.add_argument(
        "--no-default-excludes",
        action="store_true",
        help=f"Do not skip {', '.join(DEFAULT_EXCLUDE_DIRS)}",
    )
    p.add_argument("--append", action="store_true",
                   help="Append to the output file instead of replacing it")
    p.add_argument("--show-size", action="store_true", help="Add byte size to each file header")
    p.add_argument("--footer", action="store_true", help="Close each file with an END FILE line")
    p.add_argument("--workers", type=_positive_int, help="Number of reader threads")
    p.add_argument(
        "--prefix-bytes",
        type=_positive_int,
        default=DEFAULT_PREFIX_SIZE,
        help=f"Bytes sniffed for binary detection (default {DEFAULT_PREFIX_SIZE})",
    )
    p.add_argument(
        "--binary-threshold",
        type=_ratio,
        default=DEFAULT_CONTROL_THRESHOLD,
        help=f"Control-byte ratio above which a file is binary (default {DEFAULT_CONTROL_THRESHOLD})",
    )
    p.add_argument("--encoding", default=DEFAULT_ENCODING,
                   help=f"Text encoding of source files (default {DEFAULT_ENCODING})")
    p.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p.parse_args(argv)


def build_rules(ns: argparse.Namespace, root: Path) -> FilterRules:
    exclude_globs: List[str] = []
    if not ns.no_gitignore:
        exclude_globs.extend(load_gitignore(root))
    if ns.config:
        exclude_globs.extend(load_extra_patterns(ns.config.resolve()))
        if ns.verbose:
            _say(f"Loaded extra patterns from {ns.config}")
    exclude_globs.extend(ns.exclude)

    exclude_dirs = list(ns.exclude_folders)
    if not ns.no_default_excludes:
        exclude_dirs.extend(DEFAULT_EXCLUDE_DIRS)

    return FilterRules(
        include_globs=tuple(ns.patterns),
        exclude_globs=tuple(exclude_globs),
        exclude_dirs=frozenset(exclude_dirs),
        exclude_extensions=frozenset(ns.exclude_extensions),
    )


def _report(result: ScanResult, out_path: Path, bytes_written: int, verbose: bool) -> None:
    if result.diagnostics:
        _say(f"{len(result.diagnostics)} path(s) skipped:", Fore.YELLOW)
        for d in result.diagnostics:
            label = _REASON_LABELS.get(d.kind, d.kind)
            _say(f"  - {d.path} ({label}: {d.reason})", Fore.YELLOW)
    if verbose:
        _say(
            f"{result.files_found} files found, {result.files_rejected} filtered out, "
            f"{len(result.entries)} written."
        )
    _say(
        f"Done → {out_path}. {len(result.entries)} files, {bytes_written} bytes written.",
        Fore.GREEN,
    )


def main(argv: Optional[List[str]] = None) -> int:
    try:
        ns = _parse_args(argv)
        logging.basicConfig(
            level=logging.DEBUG if ns.verbose else logging.WARNING,
            format="%(levelname)s: %(message)s",
        )

        try:
            codecs.lookup(ns.encoding)
        except LookupError:
            _err(f"Unknown encoding '{ns.encoding}'")
            return 1

        root = resolve_root(ns.root)
        out_path = ns.out.resolve()

        rules = build_rules(ns, root)
        config = TraversalConfig(
            root=root,
            max_depth=ns.max_depth,
            follow_symlinks=ns.follow_symlinks,
            include_hidden=ns.hidden,
        )
        classifier = functools.partial(
            classify,
            prefix_size=ns.prefix_bytes,
            control_threshold=ns.binary_threshold,
            encoding=ns.encoding,
        )

        if ns.verbose:
            _say(f"Scanning {root} …")
            if rules.include_globs:
                _say(f"Using patterns: {', '.join(rules.include_globs)}")
            if rules.exclude_dirs:
                _say(f"Excluding folders: {', '.join(sorted(rules.exclude_dirs))}")
            if rules.exclude_extensions:
                _say(f"Excluding extensions: {', '.join(sorted(rules.exclude_extensions))}")

        result = collect(
            config,
            rules,
            classifier=classifier,
            workers=ns.workers,
            skip_paths=[out_path],
        )
        bytes_written = write_file_list(
            result.entries,
            out_path,
            show_size=ns.show_size,
            footer=ns.footer,
            append=ns.append,
        )
        _report(result, out_path, bytes_written, ns.verbose)
        return 0

    except JoinfilesError as e:
        _err(str(e))
        return 1
    except KeyboardInterrupt:
        print("\nCancelled.", file=sys.stderr)
        return 1
    except Exception as e:
        _err(f"Unexpected error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
