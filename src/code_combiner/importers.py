from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence
    from pathlib import Path

    from code_combiner.graph import ImportEdge


def reachable_from(seeds: Iterable[Path], adjacency: Mapping[Path, Sequence[Path]]) -> set[Path]:
    """Collect every node reachable from `seeds` (seeds included)."""
    seen: set[Path] = set()
    stack = list(seeds)
    while stack:
        node = stack.pop()
        if node in seen:
            continue
        seen.add(node)
        stack.extend(n for n in adjacency.get(node, ()) if n not in seen)
    return seen


def compute_importers(
    entries: Sequence[Path],
    edges: Iterable[ImportEdge],
    discovery_order: Sequence[Path],
) -> dict[Path, tuple[Path, ...]]:
    """Compute the importer set of every dependency.

    A file X is an importer of dependency D when X != D, X is an entry or is
    reachable from one, and a directed path of import edges leads from X to D.

    Args:
        entries (Sequence[Path]): the traversal roots
        edges (Iterable[ImportEdge]): the recorded import edges
        discovery_order (Sequence[Path]): files in first-discovery order

    Returns:
        dict[Path, tuple[Path, ...]]: for each dependency (non-entry file reachable
            from an entry), its importers in first-discovery order
    """
    forward: dict[Path, list[Path]] = defaultdict(list)
    backward: dict[Path, list[Path]] = defaultdict(list)
    for edge in edges:
        forward[edge.importer].append(edge.imported)
        backward[edge.imported].append(edge.importer)

    reachable = reachable_from(entries, forward)
    rank = {file_id: i for i, file_id in enumerate(discovery_order)}
    entry_set = set(entries)

    importers: dict[Path, tuple[Path, ...]] = {}
    for target in discovery_order:
        if target in entry_set or target not in reachable:
            continue
        ancestors = reachable_from([target], backward) & reachable
        ancestors.discard(target)
        importers[target] = tuple(sorted(ancestors, key=lambda f: rank.get(f, len(rank))))
    return importers
