"""Shared fixtures: in-memory graphs for pure logic, SQLite catalog for the rest."""

from __future__ import annotations

from collections.abc import Callable, Iterator

import pytest
import sqlalchemy as sa
from sqlalchemy.pool import StaticPool

from pazuzu.catalog.service import FeatureService
from pazuzu.common.types import DependencyGraph, Feature
from pazuzu.store.sql_store import SqlCatalog


def _build_graph(spec: dict[str, list[str]]) -> DependencyGraph:
    """Build a graph from {name: [dependency names]}. Ids follow name order."""
    ids = {name: i for i, name in enumerate(sorted(spec), start=1)}
    features = {
        ids[name]: Feature(
            id=ids[name],
            name=name,
            docker_data=f"RUN install-{name}",
            dependencies=sorted(deps),
        )
        for name, deps in spec.items()
    }
    edges = {ids[name]: frozenset(ids[d] for d in deps) for name, deps in spec.items()}
    return DependencyGraph(features=features, edges=edges)


class GraphStore:
    """Read-only store over a prebuilt graph; enough for resolution and composition."""

    def __init__(self, graph: DependencyGraph) -> None:
        self._graph = graph
        self._by_name = {f.name: f for f in graph.features.values()}

    def find_by_name(self, name: str) -> Feature | None:
        return self._by_name.get(name)

    def load_graph(self) -> DependencyGraph:
        return self._graph


@pytest.fixture
def make_graph() -> Callable[[dict[str, list[str]]], DependencyGraph]:
    return _build_graph


@pytest.fixture
def graph_store() -> Callable[[DependencyGraph], GraphStore]:
    return GraphStore


@pytest.fixture
def diamond() -> DependencyGraph:
    """A depends on B and C; B and C both depend on D."""
    return _build_graph({"A": ["B", "C"], "B": ["D"], "C": ["D"], "D": []})


@pytest.fixture
def catalog() -> Iterator[SqlCatalog]:
    engine = sa.create_engine(
        "sqlite://", poolclass=StaticPool, connect_args={"check_same_thread": False}
    )
    catalog = SqlCatalog(engine)
    catalog.create_schema()
    yield catalog
    engine.dispose()


@pytest.fixture
def service(catalog: SqlCatalog) -> FeatureService:
    return FeatureService(catalog)
