"""
code_combiner: combine project source files into one XML document.

Overview
--------
Files given on the command line are emitted as `<file>` elements of a single
XML document, grouped as:

1) **targets** (`--target`): files you intend to change;
2) **references** (`--reference`): files given for context;
3) plain files from positional paths (directories are walked, honoring
   `.gitignore` and the ignore patterns);
4) **dependencies** (`--deps`): every file transitively imported by the
   JavaScript/TypeScript entry files, each annotated with the files that import
   it. Imports are resolved through relative paths, `tsconfig.json` path aliases
   and `baseUrl`, and the usual extension and `index` file probing.

The document is copied to the clipboard (`--copy`), saved (`--save`) or
printed (`--stdout`); without a flag the `action` of `~/.pcc_config.toml`
applies.

Usage
-----
    code-combiner src/app.ts --deps --copy
    code-combiner --target src/cart.ts --reference src/types.ts --deps --save --output-path ~/cart.xml
    code-combiner src --ignore "**/*.test.ts" --stdout
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from code_combiner import __version__
from code_combiner.actions import execute_action
from code_combiner.config import ProcessingOptions, config_file_path, load_config
from code_combiner.exceptions import CodeCombinerError, NoEntryPointsError
from code_combiner.file_manipulation import (
    build_ignore_spec,
    display_path,
    is_ignored,
    is_supported_file,
    read_source_text,
    walk_files,
)
from code_combiner.graph import build_dependency_graph
from code_combiner.logging import logger, setup_logging
from code_combiner.output_construction import SourceFile, build_xml
from code_combiner.resolver import ResolutionContext
from code_combiner.settings import Settings
from code_combiner.tsconfig import load_tsconfig_aliases

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    import pathspec


def _non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as e:
        msg = f"invalid int value: {value!r}"
        raise argparse.ArgumentTypeError(msg) from e
    if number < 0:
        msg = f"must be 0 or more, got {number}"
        raise argparse.ArgumentTypeError(msg)
    return number


def parse_args(argv: Sequence[str] | None = None) -> Settings:
    """Parse command line arguments into `Settings`."""
    p = argparse.ArgumentParser(
        prog="code-combiner",
        description="Combine project files and their imports into one XML document.",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("targets", nargs="*", type=Path, help="Target files or directories to process.")
    p.add_argument("--target", dest="target_files", action="append", type=Path, default=[], help="Target file to be modified (repeatable).")
    p.add_argument("--reference", dest="reference_files", action="append", type=Path, default=[], help="Reference file for context (repeatable).")

    action = p.add_mutually_exclusive_group()
    action.add_argument("--copy", dest="copy_output", action="store_true", help="Copy the combined code to clipboard.")
    action.add_argument("--save", action="store_true", help="Save the combined code to file.")
    action.add_argument("--stdout", action="store_true", help="Print the combined code.")
    p.add_argument("--output-path", type=str, default="", help="Output file path.")

    p.add_argument("--ignore-file-path", type=str, default="", help="Ignore file path in .gitignore format.")
    p.add_argument("--ignore", dest="ignore_patterns", metavar="PATTERN", action="append", default=[], help="Additional ignore pattern (repeatable).")
    paths = p.add_mutually_exclusive_group()
    paths.add_argument("--relative", dest="relative", action="store_const", const=True, default=None, help="Use paths relative to the working directory.")
    paths.add_argument("--absolute", dest="relative", action="store_const", const=False, help="Use absolute paths.")

    p.add_argument("--deps", action="store_true", help="Resolve dependencies of JS/TS entry files.")
    p.add_argument("--workers", type=_non_negative_int, default=0, help="Threads reading files ahead during resolution.")

    p.add_argument("--config", dest="config_path", type=str, default="", help="Configuration file (default ~/.pcc_config.toml).")
    p.add_argument("--log-file", type=str, default="", help="Log file path.")
    p.add_argument("--verbose", action="store_true", help="Log and report unresolved imports.")
    args = p.parse_args(argv)
    return Settings(**vars(args))


def build_resolution_context(root: Path, options: ProcessingOptions) -> ResolutionContext:
    """Resolution settings for `root`: options plus the aliases of its tsconfig.json."""
    aliases, base_url = load_tsconfig_aliases(root)
    return ResolutionContext(
        root=root,
        extensions=options.extensions,
        aliases=aliases,
        base_url=base_url,
        external_roots=options.external_roots,
    )


class _Collector:
    """Loads files for output, each at most once."""

    def __init__(self, cwd: Path, options: ProcessingOptions, spec: pathspec.PathSpec) -> None:
        self.cwd = cwd
        self.options = options
        self.spec = spec
        self.emitted: set[Path] = set()

    def name(self, path: Path) -> str:
        return display_path(path, self.cwd, relative=self.options.use_relative_paths)

    def accepts(self, path: Path) -> bool:
        return path not in self.emitted and not is_ignored(path, self.spec, self.cwd)

    def load(self, path: Path, importers: Iterable[Path] = (), *, keep_unreadable: bool = False) -> SourceFile | None:
        try:
            content = read_source_text(path)
        except OSError as e:
            logger.warning("file_unreadable", path=str(path), error=str(e))
            if not keep_unreadable:
                return None
            content = ""
        self.emitted.add(path)
        return SourceFile(name=self.name(path), content=content, importers=tuple(self.name(i) for i in importers))

    def load_all(self, paths: Iterable[Path]) -> list[SourceFile]:
        out: list[SourceFile] = []
        for path in paths:
            if not self.accepts(path):
                continue
            source = self.load(path)
            if source is not None:
                out.append(source)
        return out


def _absolute(paths: Iterable[Path], cwd: Path) -> list[Path]:
    return [(cwd / p).resolve() for p in paths]


def combine(settings: Settings, options: ProcessingOptions, cwd: Path) -> str:
    """Collect the requested files, resolve dependencies and build the XML document.

    Args:
        settings (Settings): the parsed command line
        options (ProcessingOptions): options merged with the configuration file
        cwd (Path): working directory, also the project root for resolution

    Returns:
        str: the combined document
    """
    collector = _Collector(cwd, options, build_ignore_spec(options.ignore_patterns, options.ignore_file_path))
    target_files = _absolute(settings.target_files, cwd)
    reference_files = _absolute(settings.reference_files, cwd)
    reserved = set(target_files) | set(reference_files)

    targets = collector.load_all(target_files)
    references = collector.load_all(reference_files)

    entries: list[Path] = []
    if options.deps:
        entries.extend(p for p in target_files if p.is_file() and is_supported_file(p, options.extensions))

    files: list[SourceFile] = []
    for target in _absolute(settings.targets, cwd):
        if target.is_file():
            candidates = [target]
        elif target.is_dir():
            candidates = walk_files(target)
        else:
            logger.warning("target_not_found", path=str(target))
            continue
        for path in candidates:
            if path in reserved or not collector.accepts(path):
                continue
            source = collector.load(path)
            if source is None:
                continue
            files.append(source)
            if options.deps and is_supported_file(path, options.extensions):
                entries.append(path)

    dependencies: list[SourceFile] = []
    if entries:
        context = build_resolution_context(cwd, options)
        graph = build_dependency_graph(entries, context, workers=options.workers, report_misses=settings.verbose)
        for dep in graph.dependencies:
            if not collector.accepts(dep):
                continue
            source = collector.load(dep, importers=graph.importers_of(dep), keep_unreadable=True)
            if source is not None:
                dependencies.append(source)

    logger.info(
        "combined",
        targets=len(targets),
        references=len(references),
        files=len(files),
        dependencies=len(dependencies),
    )
    return build_xml(targets=targets, references=references, files=files, dependencies=dependencies)


def main(argv: Sequence[str] | None = None) -> int:
    settings = parse_args(argv)
    if settings.log_file or settings.verbose:
        setup_logging(settings.log_file or None, level=logging.DEBUG if settings.verbose else logging.INFO)

    try:
        if not settings.has_inputs:
            raise NoEntryPointsError
        config = load_config(config_file_path(settings.config_path or None))
        options = ProcessingOptions.from_settings(settings, config)
        document = combine(settings, options, Path.cwd().resolve())
        summary = execute_action(settings, config, document)
    except CodeCombinerError as e:
        logger.error("code_combiner_failed", error=str(e))
        sys.stderr.write(f"Error: {e}\n")
        return 1

    print(summary, file=sys.stderr)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
