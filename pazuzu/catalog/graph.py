"""Dependency resolution and cycle detection.

Resolution is a bulk lookup that reports every missing name at once.
Cycle detection is a local recheck: it assumes the stored graph is already
acyclic, so only the subject's proposed edges can close a loop.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pazuzu.common.errors import CyclicDependencyError, UnresolvedNamesError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from pazuzu.catalog.interfaces import FeatureStore
    from pazuzu.common.types import DependencyGraph, Feature


def resolve_dependencies(store: FeatureStore, names: Iterable[str] | None) -> set[Feature]:
    """Look up every name; fail with the full set of names that don't exist."""
    unique_names = set(names or ())
    resolved: set[Feature] = set()
    missing: set[str] = set()
    for name in unique_names:
        feature = store.find_by_name(name)
        if feature is None:
            missing.add(name)
        else:
            resolved.add(feature)
    if missing:
        raise UnresolvedNamesError(missing)
    return resolved


def reachable(graph: DependencyGraph, start: Iterable[int]) -> set[int]:
    """Ids reachable from start (inclusive) along dependency edges."""
    visited: set[int] = set()
    stack = list(start)
    while stack:
        node = stack.pop()
        if node in visited:
            continue
        visited.add(node)
        stack.extend(graph.dependencies_of(node) - visited)
    return visited


def check_acyclic(
    subject: Feature, candidates: Iterable[Feature], graph: DependencyGraph
) -> None:
    """Fail if any candidate dependency is, or transitively depends on, subject."""
    if subject.id is None:
        # Unsaved features have no incoming edges yet
        return
    offenders = [
        candidate.name
        for candidate in candidates
        if candidate.id is not None and subject.id in reachable(graph, [candidate.id])
    ]
    if offenders:
        raise CyclicDependencyError(subject.name, offenders)
