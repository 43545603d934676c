"""Build the import graph of a set of entry files.

The walk is depth first from each entry, in the order given, and follows
specifiers in source order. Every file moves through three states:

    UNVISITED -> IN_PROGRESS -> DONE

A resolved import of an UNVISITED file descends into it; an import of an
IN_PROGRESS file closes a cycle, which is recorded without descending; an
import of a DONE file only adds the edge. The walk keeps its own frame stack,
so long import chains do not consume Python recursion depth.

Nothing here is fatal: unreadable or unparsable files become leaves and are
reported in `DependencyGraph.diagnostics`; unresolvable specifiers are external
and silently dropped (reported only when `report_misses` is set).
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import StrEnum, auto
from pathlib import Path
from typing import TYPE_CHECKING, Self

from pydantic import BaseModel, ConfigDict, Field

from code_combiner.exceptions import NoEntryPointsError, SpecifierParseError
from code_combiner.importers import compute_importers
from code_combiner.logging import logger
from code_combiner.resolver import ResolutionContext, resolve_specifier
from code_combiner.specifiers import decode_source, extract_specifiers

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from types import TracebackType


class VisitState(StrEnum):
    """Traversal state of one file."""

    UNVISITED = auto()
    IN_PROGRESS = auto()
    DONE = auto()


class DiagnosticKind(StrEnum):
    """Recoverable conditions met while building the graph."""

    PARSE_WARNING = auto()
    READ_WARNING = auto()
    CYCLE_DETECTED = auto()
    UNRESOLVED = auto()


class Diagnostic(BaseModel):
    """A warning event. For cycles, `file` imports `related`, which was still in progress."""

    model_config = ConfigDict(frozen=True)

    kind: DiagnosticKind
    file: Path
    message: str
    related: Path | None = None
    specifier: str = ""


class ImportEdge(BaseModel):
    """`importer` imports `imported`; `specifier` is the text of the first import seen."""

    model_config = ConfigDict(frozen=True)

    importer: Path
    imported: Path
    specifier: str = ""


class DependencyGraph(BaseModel):
    """Result of a traversal.

    Attributes:
        entries: the traversal roots, deduplicated, in caller order.
        dependencies: files reachable from the entries, entries excluded, in discovery order.
        edges: import edges, one per (importer, imported) pair, in discovery order.
        importers: for each dependency, every file that reaches it, in discovery order.
        cycles: (importer, imported) pairs of the edges that closed a cycle.
        diagnostics: warnings, in the order they were raised.
    """

    model_config = ConfigDict(frozen=True)

    entries: tuple[Path, ...]
    dependencies: tuple[Path, ...] = ()
    edges: tuple[ImportEdge, ...] = ()
    importers: dict[Path, tuple[Path, ...]] = Field(default_factory=dict)
    cycles: tuple[tuple[Path, Path], ...] = ()
    diagnostics: tuple[Diagnostic, ...] = ()

    def importers_of(self, file_id: Path) -> tuple[Path, ...]:
        return self.importers.get(file_id, ())

    def edge_pairs(self) -> set[tuple[Path, Path]]:
        return {(e.importer, e.imported) for e in self.edges}


@dataclass
class TraversalState:
    """Mutable state of one traversal; owned by a single `GraphBuilder.build` call."""

    states: dict[Path, VisitState] = field(default_factory=dict)
    edges: dict[tuple[Path, Path], ImportEdge] = field(default_factory=dict)
    discovery: list[Path] = field(default_factory=list)
    cycles: list[tuple[Path, Path]] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    def state_of(self, file_id: Path) -> VisitState:
        return self.states.get(file_id, VisitState.UNVISITED)

    def start(self, file_id: Path) -> None:
        self.states[file_id] = VisitState.IN_PROGRESS
        self.discovery.append(file_id)

    def finish(self, file_id: Path) -> None:
        self.states[file_id] = VisitState.DONE

    def add_edge(self, importer: Path, imported: Path, specifier: str) -> None:
        self.edges.setdefault((importer, imported), ImportEdge(importer=importer, imported=imported, specifier=specifier))

    def warn(self, diagnostic: Diagnostic) -> None:
        self.diagnostics.append(diagnostic)
        log = logger.debug if diagnostic.kind is DiagnosticKind.UNRESOLVED else logger.warning
        log(
            diagnostic.kind.value,
            file=str(diagnostic.file),
            related=str(diagnostic.related) if diagnostic.related else None,
            detail=diagnostic.message,
        )

    def record_cycle(self, importer: Path, imported: Path, specifier: str) -> None:
        if (importer, imported) in self.cycles:
            return
        self.cycles.append((importer, imported))
        self.warn(
            Diagnostic(
                kind=DiagnosticKind.CYCLE_DETECTED,
                file=importer,
                related=imported,
                specifier=specifier,
                message=f"circular import: {importer} imports {imported} ({specifier!r})",
            ),
        )


class SourceReader:
    """Reads file bytes, optionally ahead of time on a thread pool.

    Only reads run on the pool; callers consume results on their own thread.
    """

    def __init__(self, workers: int = 0) -> None:
        self._pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="code_combiner") if workers > 0 else None
        self._pending: dict[Path, Future[bytes]] = {}

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        if self._pool is not None:
            self._pool.shutdown(wait=True, cancel_futures=True)
        self._pending.clear()

    def prefetch(self, paths: Iterable[Path]) -> None:
        if self._pool is None:
            return
        for path in paths:
            if path not in self._pending:
                self._pending[path] = self._pool.submit(path.read_bytes)

    def read(self, path: Path) -> bytes:
        pending = self._pending.pop(path, None)
        if pending is not None:
            return pending.result()
        return path.read_bytes()


@dataclass
class _Frame:
    file_id: Path
    imports: list[tuple[str, Path | None]]
    index: int = 0


class GraphBuilder:
    """Depth-first dependency traversal over a `ResolutionContext`."""

    def __init__(self, context: ResolutionContext, *, workers: int = 0, report_misses: bool = False) -> None:
        self.context = context
        self.workers = workers
        self.report_misses = report_misses

    def build(self, entries: Sequence[Path]) -> DependencyGraph:
        """Traverse from `entries` and return the finished graph.

        Args:
            entries (Sequence[Path]): entry files, in the order they should be walked

        Raises:
            NoEntryPointsError: if `entries` is empty

        Returns:
            DependencyGraph: dependencies, edges, importer sets, cycles and diagnostics
        """
        entry_ids = list(dict.fromkeys(Path(e).resolve() for e in entries))
        if not entry_ids:
            raise NoEntryPointsError

        state = TraversalState()
        with SourceReader(self.workers) as reader:
            reader.prefetch(entry_ids)
            for entry in entry_ids:
                if state.state_of(entry) is VisitState.UNVISITED:
                    self._walk(entry, state, reader)

        entry_set = set(entry_ids)
        dependencies = tuple(f for f in state.discovery if f not in entry_set)
        importers = compute_importers(entry_ids, state.edges.values(), state.discovery)
        logger.info(
            "dependency_graph_built",
            entries=len(entry_ids),
            dependencies=len(dependencies),
            edges=len(state.edges),
            cycles=len(state.cycles),
        )
        return DependencyGraph(
            entries=tuple(entry_ids),
            dependencies=dependencies,
            edges=tuple(state.edges.values()),
            importers=importers,
            cycles=tuple(state.cycles),
            diagnostics=tuple(state.diagnostics),
        )

    def _walk(self, root: Path, state: TraversalState, reader: SourceReader) -> None:
        stack = [self._enter(root, state, reader)]
        while stack:
            frame = stack[-1]
            if frame.index >= len(frame.imports):
                state.finish(frame.file_id)
                stack.pop()
                continue
            specifier, target = frame.imports[frame.index]
            frame.index += 1
            if target is None:
                continue
            if target == frame.file_id:
                # A file importing itself is reported as a cycle; no edge is kept.
                state.record_cycle(frame.file_id, target, specifier)
                continue
            state.add_edge(frame.file_id, target, specifier)
            status = state.state_of(target)
            if status is VisitState.UNVISITED:
                stack.append(self._enter(target, state, reader))
            elif status is VisitState.IN_PROGRESS:
                state.record_cycle(frame.file_id, target, specifier)

    def _enter(self, file_id: Path, state: TraversalState, reader: SourceReader) -> _Frame:
        state.start(file_id)
        imports = [(spec, resolve_specifier(spec, file_id, self.context)) for spec in self._specifiers(file_id, state, reader)]
        if self.report_misses:
            for spec, target in imports:
                if target is None:
                    state.warn(
                        Diagnostic(
                            kind=DiagnosticKind.UNRESOLVED,
                            file=file_id,
                            specifier=spec,
                            message=f"{spec!r} is external or could not be resolved",
                        ),
                    )
        reader.prefetch(t for _, t in imports if t is not None and state.state_of(t) is VisitState.UNVISITED)
        return _Frame(file_id=file_id, imports=imports)

    def _specifiers(self, file_id: Path, state: TraversalState, reader: SourceReader) -> list[str]:
        try:
            raw = reader.read(file_id)
        except OSError as e:
            state.warn(Diagnostic(kind=DiagnosticKind.READ_WARNING, file=file_id, message=f"cannot read {file_id}: {e}"))
            return []
        try:
            return extract_specifiers(decode_source(raw, file_id), file_id)
        except SpecifierParseError as e:
            state.warn(Diagnostic(kind=DiagnosticKind.PARSE_WARNING, file=file_id, message=str(e)))
            return []


def build_dependency_graph(
    entries: Sequence[Path],
    context: ResolutionContext,
    *,
    workers: int = 0,
    report_misses: bool = False,
) -> DependencyGraph:
    """Build the dependency graph of `entries`; see `GraphBuilder.build`."""
    return GraphBuilder(context, workers=workers, report_misses=report_misses).build(entries)
