from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING

import pathspec

from code_combiner.config import DEFAULT_EXCLUDES
from code_combiner.logging import logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

GITIGNORE_FILE_NAME = ".gitignore"


def relpath(path: Path, root: Path) -> str:
    """Send the relative path of path from root.

    Args:
        path (Path): the path to "relativise"
        root (Path): the root to relativise from

    Returns:
        str: the relative path from root to path, with POSIX separators.
            If path is not under root, returns the original path as a string.
    """
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return str(path)


def display_path(path: Path, cwd: Path, *, relative: bool) -> str:
    """Return the name under which a file appears in the output.

    Args:
        path (Path): the absolute file path
        cwd (Path): the working directory
        relative (bool): whether to show paths relative to `cwd` when possible

    Returns:
        str: the display name
    """
    return relpath(path, cwd) if relative else str(path)


def read_ignore_file(path: Path) -> list[str]:
    """Read gitignore-style patterns from a file; a missing file yields no patterns."""
    try:
        return path.read_text(encoding="utf-8", errors="ignore").splitlines()
    except OSError as e:
        logger.warning("ignore_file_unreadable", path=str(path), error=str(e))
        return []


def build_ignore_spec(patterns: Sequence[str], ignore_file: Path | None = None) -> pathspec.PathSpec:
    """Compile ignore patterns (gitignore syntax) into one matcher.

    Args:
        patterns (Sequence[str]): patterns from the config file and the command line
        ignore_file (Path | None, optional): additional file of patterns

    Returns:
        pathspec.PathSpec: the compiled matcher
    """
    lines = list(patterns)
    if ignore_file is not None:
        lines.extend(read_ignore_file(ignore_file))
    return pathspec.PathSpec.from_lines("gitwildmatch", lines)


def is_ignored(path: Path, spec: pathspec.PathSpec, root: Path) -> bool:
    """Check `path`, relative to `root`, against the ignore matcher."""
    return spec.match_file(relpath(path, root))


def walk_files(directory: Path) -> list[Path]:
    """Walk `directory` and return its files, sorted.

    Default excluded directories are pruned and a `.gitignore` at the top of
    `directory` is honored.

    Args:
        directory (Path): the directory to walk

    Returns:
        list[Path]: absolute file paths
    """
    directory = directory.resolve()
    gitignore = directory / GITIGNORE_FILE_NAME
    spec = pathspec.PathSpec.from_lines("gitwildmatch", read_ignore_file(gitignore) if gitignore.is_file() else [])
    results: list[Path] = []
    for root, dirs, files in os.walk(directory):
        base = Path(root)
        dirs[:] = sorted(
            d for d in dirs if d not in DEFAULT_EXCLUDES and not spec.match_file(relpath(base / d, directory) + "/")
        )
        for f in sorted(files):
            p = base / f
            if f in DEFAULT_EXCLUDES or spec.match_file(relpath(p, directory)):
                continue
            if p.is_file():
                results.append(p)
    return results


def is_supported_file(path: Path, extensions: Iterable[str]) -> bool:
    """Whether `path` has one of the source extensions the resolver follows."""
    return path.suffix.lower() in set(extensions)


def read_source_text(path: Path) -> str:
    """Read a file for output; undecodable bytes are replaced."""
    return path.read_text(encoding="utf-8", errors="replace")
