"""Compose a Dockerfile from a set of features and their transitive dependencies."""

from __future__ import annotations

import heapq
from collections import defaultdict
from typing import TYPE_CHECKING

from pazuzu.catalog.graph import reachable, resolve_dependencies
from pazuzu.common.errors import StoreError
from pazuzu.common.types import DockerArtifact

if TYPE_CHECKING:
    from collections.abc import Iterable

    from pazuzu.catalog.interfaces import FeatureStore
    from pazuzu.common.types import DependencyGraph, Feature


def topological_order(graph: DependencyGraph, ids: Iterable[int]) -> list[Feature]:
    """Order features so each comes after all of its dependencies.

    Every dependency of a node in ids must itself be in ids (a closure).
    Ties are broken by name, then id, so the result is independent of the
    order of ids.
    """
    nodes = set(ids)
    pending: dict[int, int] = {}
    dependents: dict[int, list[int]] = defaultdict(list)
    for node in nodes:
        deps = graph.dependencies_of(node) & nodes
        pending[node] = len(deps)
        for dep in deps:
            dependents[dep].append(node)

    def sort_key(node: int) -> tuple[str, int]:
        return graph.features[node].name, node

    ready = [sort_key(node) for node, count in pending.items() if count == 0]
    heapq.heapify(ready)

    ordered: list[Feature] = []
    while ready:
        _, node = heapq.heappop(ready)
        ordered.append(graph.features[node])
        for dependent in dependents[node]:
            pending[dependent] -= 1
            if pending[dependent] == 0:
                heapq.heappush(ready, sort_key(dependent))

    if len(ordered) != len(nodes):
        stuck = sorted(graph.features[n].name for n, count in pending.items() if count > 0)
        raise StoreError(f"Stored dependency graph contains a cycle through: {', '.join(stuck)}")
    return ordered


def _join_blocks(blocks: list[str]) -> str:
    blocks = [b.strip("\n") for b in blocks if b and b.strip()]
    if not blocks:
        return ""
    return "\n\n".join(blocks) + "\n"


def render(features: list[Feature], base_image: str | None = None) -> DockerArtifact:
    """Concatenate fragments in order; prepend FROM when a base image is given."""
    header = [f"FROM {base_image}"] if base_image else []
    return DockerArtifact(
        features=[f.name for f in features],
        dockerfile=_join_blocks(header + [f.docker_data for f in features]),
        test_script=_join_blocks([f.test_snippet or "" for f in features]),
    )


def compose(
    store: FeatureStore, names: Iterable[str] | None, base_image: str | None = None
) -> DockerArtifact:
    """Resolve names, expand to the transitive closure and render it."""
    requested = resolve_dependencies(store, names)
    if not requested:
        return render([], base_image)

    graph = store.load_graph()
    closure = reachable(graph, [f.id for f in requested if f.id is not None])
    return render(topological_order(graph, closure), base_image)
