"""SQLAlchemy-backed feature store."""

from __future__ import annotations

from collections import defaultdict
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from pazuzu.catalog.interfaces import Catalog, FeatureStore
from pazuzu.common.errors import DuplicateNameError, StoreError, UnresolvedNamesError
from pazuzu.common.logging import get_logger
from pazuzu.common.types import Container, DependencyGraph, Feature

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from sqlalchemy.engine import Connection, Engine

    from pazuzu.common.config import DatabaseConfig

logger = get_logger(__name__)

METADATA = sa.MetaData()

FEATURES_TABLE = sa.Table(
    "features",
    METADATA,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("name", sa.String(256), nullable=False, unique=True),
    sa.Column("docker_data", sa.Text, nullable=False, default=""),
    sa.Column("test_snippet", sa.Text, nullable=True),
    sa.Column("description", sa.String(4096), nullable=True),
    sa.Column("author", sa.String(256), nullable=True),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
)

FEATURE_DEPENDENCY_TABLE = sa.Table(
    "feature_dependency",
    METADATA,
    sa.Column(
        "feature_id",
        sa.Integer,
        sa.ForeignKey("features.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    sa.Column(
        "dependency_feature_id",
        sa.Integer,
        sa.ForeignKey("features.id"),
        primary_key=True,
    ),
)

CONTAINERS_TABLE = sa.Table(
    "containers",
    METADATA,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("name", sa.String(256), nullable=False, unique=True),
)

CONTAINER_FEATURE_TABLE = sa.Table(
    "container_feature",
    METADATA,
    sa.Column(
        "container_id",
        sa.Integer,
        sa.ForeignKey("containers.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    sa.Column("feature_id", sa.Integer, sa.ForeignKey("features.id"), primary_key=True),
)


class SqlFeatureStore(FeatureStore):
    """Feature store bound to a single open transaction."""

    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    def _dependency_names(self, feature_ids: Iterable[int]) -> dict[int, list[str]]:
        ids = list(feature_ids)
        if not ids:
            return {}
        dep = FEATURE_DEPENDENCY_TABLE
        query = (
            sa.select(dep.c.feature_id, FEATURES_TABLE.c.name)
            .select_from(
                dep.join(FEATURES_TABLE, dep.c.dependency_feature_id == FEATURES_TABLE.c.id)
            )
            .where(dep.c.feature_id.in_(ids))
            .order_by(FEATURES_TABLE.c.name)
        )
        names: dict[int, list[str]] = defaultdict(list)
        for row in self._conn.execute(query):
            names[row.feature_id].append(row.name)
        return names

    def _to_features(self, rows: Iterable[sa.Row]) -> list[Feature]:  # type: ignore[type-arg]
        rows = list(rows)
        deps = self._dependency_names(row.id for row in rows)
        return [
            Feature(
                id=row.id,
                name=row.name,
                docker_data=row.docker_data or "",
                test_snippet=row.test_snippet,
                description=row.description,
                author=row.author,
                updated_at=row.updated_at,
                dependencies=deps.get(row.id, []),
            )
            for row in rows
        ]

    def find_by_name(self, name: str) -> Feature | None:
        query = sa.select(FEATURES_TABLE).where(FEATURES_TABLE.c.name == name)
        found = self._to_features(self._conn.execute(query))
        return found[0] if found else None

    def find_by_name_containing(
        self, substring: str, case_insensitive: bool = True
    ) -> list[Feature]:
        name = FEATURES_TABLE.c.name
        condition = (
            name.icontains(substring, autoescape=True)
            if case_insensitive
            else name.contains(substring, autoescape=True)
        )
        query = (
            sa.select(FEATURES_TABLE)
            .where(condition)
            .order_by(FEATURES_TABLE.c.name)
        )
        rows = self._conn.execute(query).fetchall()
        if not case_insensitive:
            # LIKE ignores ASCII case on some dialects (SQLite)
            rows = [row for row in rows if substring in row.name]
        return self._to_features(rows)

    def find_referencing_features(self, target: Feature) -> list[Feature]:
        dep = FEATURE_DEPENDENCY_TABLE
        query = (
            sa.select(FEATURES_TABLE)
            .select_from(FEATURES_TABLE.join(dep, dep.c.feature_id == FEATURES_TABLE.c.id))
            .where(dep.c.dependency_feature_id == target.id)
            .order_by(FEATURES_TABLE.c.name)
        )
        return self._to_features(self._conn.execute(query))

    def find_referencing_containers(self, target: Feature) -> list[Container]:
        link = CONTAINER_FEATURE_TABLE
        query = (
            sa.select(CONTAINERS_TABLE.c.id, CONTAINERS_TABLE.c.name)
            .select_from(CONTAINERS_TABLE.join(link, link.c.container_id == CONTAINERS_TABLE.c.id))
            .where(link.c.feature_id == target.id)
            .order_by(CONTAINERS_TABLE.c.name)
        )
        containers = self._conn.execute(query).fetchall()
        if not containers:
            return []

        members: dict[int, list[str]] = defaultdict(list)
        member_query = (
            sa.select(link.c.container_id, FEATURES_TABLE.c.name)
            .select_from(link.join(FEATURES_TABLE, link.c.feature_id == FEATURES_TABLE.c.id))
            .where(link.c.container_id.in_([c.id for c in containers]))
            .order_by(FEATURES_TABLE.c.name)
        )
        for row in self._conn.execute(member_query):
            members[row.container_id].append(row.name)
        return [Container(id=c.id, name=c.name, features=members[c.id]) for c in containers]

    def _feature_ids(self, names: Iterable[str]) -> dict[str, int]:
        names = set(names)
        if not names:
            return {}
        query = sa.select(FEATURES_TABLE.c.id, FEATURES_TABLE.c.name).where(
            FEATURES_TABLE.c.name.in_(names)
        )
        found = {row.name: row.id for row in self._conn.execute(query)}
        missing = names - found.keys()
        if missing:
            raise UnresolvedNamesError(missing)
        return found

    def save(self, feature: Feature) -> Feature:
        now = datetime.now(UTC)
        values = {
            "name": feature.name,
            "docker_data": feature.docker_data,
            "test_snippet": feature.test_snippet,
            "description": feature.description,
            "author": feature.author,
            "updated_at": now,
        }
        try:
            if feature.id is None:
                result = self._conn.execute(sa.insert(FEATURES_TABLE).values(**values))
                feature_id = result.inserted_primary_key[0]  # type: ignore[index]
            else:
                feature_id = feature.id
                self._conn.execute(
                    sa.update(FEATURES_TABLE)
                    .where(FEATURES_TABLE.c.id == feature_id)
                    .values(**values)
                )
        except IntegrityError as e:
            # Lost a race with a concurrent writer on the unique name
            raise DuplicateNameError(feature.name) from e

        dep_ids = self._feature_ids(feature.dependencies)
        self._conn.execute(
            sa.delete(FEATURE_DEPENDENCY_TABLE).where(
                FEATURE_DEPENDENCY_TABLE.c.feature_id == feature_id
            )
        )
        if dep_ids:
            self._conn.execute(
                sa.insert(FEATURE_DEPENDENCY_TABLE),
                [
                    {"feature_id": feature_id, "dependency_feature_id": dep_id}
                    for dep_id in dep_ids.values()
                ],
            )

        logger.debug("feature_saved", feature_id=feature_id, name=feature.name)
        return feature.model_copy(
            update={
                "id": feature_id,
                "updated_at": now,
                "dependencies": sorted(feature.dependencies),
            }
        )

    def delete(self, feature: Feature) -> None:
        self._conn.execute(
            sa.delete(FEATURE_DEPENDENCY_TABLE).where(
                FEATURE_DEPENDENCY_TABLE.c.feature_id == feature.id
            )
        )
        self._conn.execute(sa.delete(FEATURES_TABLE).where(FEATURES_TABLE.c.id == feature.id))

    def add_container(self, name: str, feature_names: Iterable[str]) -> Container:
        feature_ids = self._feature_ids(feature_names)
        result = self._conn.execute(sa.insert(CONTAINERS_TABLE).values(name=name))
        container_id = result.inserted_primary_key[0]  # type: ignore[index]
        if feature_ids:
            self._conn.execute(
                sa.insert(CONTAINER_FEATURE_TABLE),
                [{"container_id": container_id, "feature_id": fid} for fid in feature_ids.values()],
            )
        return Container(id=container_id, name=name, features=sorted(feature_ids))

    def load_graph(self) -> DependencyGraph:
        features = self._to_features(self._conn.execute(sa.select(FEATURES_TABLE)))
        edges: dict[int, set[int]] = defaultdict(set)
        for row in self._conn.execute(sa.select(FEATURE_DEPENDENCY_TABLE)):
            edges[row.feature_id].add(row.dependency_feature_id)
        return DependencyGraph(
            features={f.id: f for f in features if f.id is not None},
            edges={k: frozenset(v) for k, v in edges.items()},
        )


class SqlCatalog(Catalog):
    """Opens one database transaction per unit of work."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    @classmethod
    def from_config(cls, config: DatabaseConfig) -> SqlCatalog:
        return cls(sa.create_engine(config.url, echo=config.echo, pool_pre_ping=True))

    def create_schema(self) -> None:
        """Create tables if they don't exist."""
        try:
            METADATA.create_all(self._engine)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to create schema: {e}") from e
        logger.info("database_schema_initialized")

    @contextmanager
    def transaction(self) -> Iterator[SqlFeatureStore]:
        try:
            with self._engine.begin() as conn:
                yield SqlFeatureStore(conn)
        except SQLAlchemyError as e:
            logger.error("store_failure", error=str(e))
            raise StoreError(str(e)) from e

    def add_container(self, name: str, feature_names: Iterable[str]) -> Container:
        """Register a container referencing existing features."""
        with self.transaction() as store:
            container = store.add_container(name, feature_names)
        logger.info("container_added", name=name, features=container.features)
        return container
