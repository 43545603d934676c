from __future__ import annotations

from pathlib import Path

import pytest

from code_combiner.graph import ImportEdge
from code_combiner.importers import compute_importers, reachable_from

A, B, C, D, X = (Path(f"/p/{n}.ts") for n in "abcdx")


def edge(importer: Path, imported: Path) -> ImportEdge:
    return ImportEdge(importer=importer, imported=imported)


@pytest.mark.unit
def test_reachable_from_includes_seeds() -> None:
    adjacency = {A: [B], B: [C], C: [A]}

    assert reachable_from([A], adjacency) == {A, B, C}
    assert reachable_from([D], adjacency) == {D}


@pytest.mark.unit
def test_importers_are_transitive_and_ordered_by_discovery() -> None:
    edges = [edge(A, B), edge(B, C), edge(A, D), edge(D, C)]

    importers = compute_importers([A], edges, [A, B, C, D])

    assert importers == {B: (A,), C: (A, B, D), D: (A,)}


@pytest.mark.unit
def test_importers_exclude_the_dependency_itself_in_cycles() -> None:
    edges = [edge(A, B), edge(B, C), edge(B, A)]

    importers = compute_importers([A], edges, [A, B, C])

    assert importers == {B: (A,), C: (A, B)}


@pytest.mark.unit
def test_importers_ignore_files_unreachable_from_entries() -> None:
    edges = [edge(A, B), edge(X, B)]

    importers = compute_importers([A], edges, [A, B, X])

    assert importers == {B: (A,)}
