"""Domain types for the feature catalog."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 — Pydantic needs this at runtime

from pydantic import BaseModel, Field


class Feature(BaseModel):
    """A named build fragment with its direct dependencies (by name)."""

    id: int | None = None
    name: str
    docker_data: str = ""
    test_snippet: str | None = None
    description: str | None = None
    author: str | None = None
    updated_at: datetime | None = None
    dependencies: list[str] = Field(default_factory=list)

    @property
    def key(self) -> int | str:
        """Stable identity: persisted id, or the name before first save."""
        return self.id if self.id is not None else self.name

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Feature):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)


class Container(BaseModel):
    id: int | None = None
    name: str
    features: list[str] = Field(default_factory=list)


class DependencyGraph(BaseModel):
    """Snapshot of the catalog: features and direct edges keyed by feature id."""

    features: dict[int, Feature] = Field(default_factory=dict)
    edges: dict[int, frozenset[int]] = Field(default_factory=dict)

    def dependencies_of(self, feature_id: int) -> frozenset[int]:
        return self.edges.get(feature_id, frozenset())


class DockerArtifact(BaseModel):
    features: list[str]  # composition order, dependencies first
    dockerfile: str
    test_script: str = ""
