"""Feature catalog operations.

Each public method runs in one store transaction: every read, check and
write commits together, or the whole operation is rolled back.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pazuzu.catalog import composer
from pazuzu.catalog.graph import check_acyclic, resolve_dependencies
from pazuzu.catalog.integrity import check_deletable
from pazuzu.common.errors import (
    DuplicateNameError,
    EmptyNameError,
    FeatureValidationError,
    NotFoundError,
)
from pazuzu.common.logging import get_logger
from pazuzu.common.types import Feature

if TYPE_CHECKING:
    from collections.abc import Iterable

    from pazuzu.catalog.interfaces import Catalog, FeatureStore
    from pazuzu.common.types import DockerArtifact

logger = get_logger(__name__)


def _is_blank(name: str | None) -> bool:
    return name is None or not name.strip()


def _load_existing(store: FeatureStore, name: str) -> Feature:
    existing = store.find_by_name(name)
    if existing is None:
        raise NotFoundError(name)
    return existing


class FeatureService:
    """Create, update, query, delete and compose catalog features."""

    def __init__(self, catalog: Catalog, default_base_image: str | None = None) -> None:
        self._catalog = catalog
        self._default_base_image = default_base_image

    def create(
        self,
        name: str,
        docker_data: str | None = None,
        dependency_names: Iterable[str] | None = None,
        *,
        test_snippet: str | None = None,
        description: str | None = None,
        author: str | None = None,
    ) -> Feature:
        try:
            if _is_blank(name):
                raise EmptyNameError()
            with self._catalog.transaction() as store:
                if store.find_by_name(name) is not None:
                    raise DuplicateNameError(name)
                # A new feature has no dependents yet, so it cannot close a cycle
                dependencies = resolve_dependencies(store, dependency_names)
                feature = store.save(
                    Feature(
                        name=name,
                        docker_data=docker_data or "",
                        test_snippet=test_snippet,
                        description=description,
                        author=author,
                        dependencies=sorted(d.name for d in dependencies),
                    )
                )
        except FeatureValidationError as e:
            logger.warning("feature_create_rejected", name=name, error=str(e))
            raise
        logger.info("feature_created", name=feature.name, dependencies=feature.dependencies)
        return feature

    def update(
        self,
        name: str,
        new_name: str | None = None,
        docker_data: str | None = None,
        dependency_names: Iterable[str] | None = None,
        *,
        test_snippet: str | None = None,
        description: str | None = None,
        author: str | None = None,
    ) -> Feature:
        """Apply only the fields that are not None."""
        try:
            with self._catalog.transaction() as store:
                existing = _load_existing(store, name)
                changes: dict[str, object] = {}

                if new_name is not None and new_name != existing.name:
                    if _is_blank(new_name):
                        raise EmptyNameError()
                    if store.find_by_name(new_name) is not None:
                        raise DuplicateNameError(new_name)
                    changes["name"] = new_name

                if dependency_names is not None:
                    dependencies = resolve_dependencies(store, dependency_names)
                    check_acyclic(existing, dependencies, store.load_graph())
                    changes["dependencies"] = sorted(d.name for d in dependencies)

                if docker_data is not None:
                    changes["docker_data"] = docker_data
                if test_snippet is not None:
                    changes["test_snippet"] = test_snippet
                if description is not None:
                    changes["description"] = description
                if author is not None:
                    changes["author"] = author

                feature = store.save(existing.model_copy(update=changes))
        except FeatureValidationError as e:
            logger.warning("feature_update_rejected", name=name, error=str(e))
            raise
        logger.info("feature_updated", name=name, fields=sorted(changes))
        return feature

    def get(self, name: str) -> Feature:
        with self._catalog.transaction() as store:
            return _load_existing(store, name)

    def list_features(self, name_filter: str | None = None) -> list[Feature]:
        """Features whose name contains name_filter, case-insensitively."""
        with self._catalog.transaction() as store:
            return store.find_by_name_containing(name_filter or "", case_insensitive=True)

    def delete(self, name: str) -> None:
        """Delete a feature. Deleting a missing feature is a no-op."""
        try:
            with self._catalog.transaction() as store:
                feature = store.find_by_name(name)
                if feature is None:
                    logger.info("feature_delete_noop", name=name)
                    return
                check_deletable(
                    feature,
                    store.find_referencing_features(feature),
                    store.find_referencing_containers(feature),
                )
                store.delete(feature)
        except FeatureValidationError as e:
            logger.warning("feature_delete_rejected", name=name, error=str(e))
            raise
        logger.info("feature_deleted", name=name)

    def compose(
        self, feature_names: Iterable[str] | None, base_image: str | None = None
    ) -> DockerArtifact:
        """Render the requested features and their dependencies as a Dockerfile.

        base_image=None uses the configured default; "" disables the FROM line.
        """
        base = self._default_base_image if base_image is None else base_image
        try:
            with self._catalog.transaction() as store:
                artifact = composer.compose(store, feature_names, base)
        except FeatureValidationError as e:
            logger.warning("dockerfile_compose_rejected", error=str(e))
            raise
        logger.info("dockerfile_composed", features=artifact.features, base_image=base)
        return artifact
