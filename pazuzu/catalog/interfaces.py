"""Abstract interfaces for feature persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from contextlib import AbstractContextManager

    from pazuzu.common.types import Container, DependencyGraph, Feature


class FeatureStore(ABC):
    """Feature records and dependency edges, bound to one transaction."""

    @abstractmethod
    def find_by_name(self, name: str) -> Feature | None:
        """Exact, case-sensitive lookup."""

    @abstractmethod
    def find_by_name_containing(
        self, substring: str, case_insensitive: bool = True
    ) -> list[Feature]:
        """Features whose name contains substring, ordered by name."""

    @abstractmethod
    def find_referencing_features(self, target: Feature) -> list[Feature]:
        """Features whose direct dependencies include target."""

    @abstractmethod
    def find_referencing_containers(self, target: Feature) -> list[Container]:
        """Containers that include target."""

    @abstractmethod
    def save(self, feature: Feature) -> Feature:
        """Insert or update a feature and its dependency edges.

        Returns:
            The stored feature with id and updated_at set.
        """

    @abstractmethod
    def delete(self, feature: Feature) -> None:
        """Remove a feature and its outgoing edges."""

    @abstractmethod
    def load_graph(self) -> DependencyGraph:
        """Snapshot of all features and edges."""


class Catalog(ABC):
    """Source of transactional FeatureStore sessions."""

    @abstractmethod
    def transaction(self) -> AbstractContextManager[FeatureStore]:
        """Yield a store; commit on normal exit, roll back on any exception."""
