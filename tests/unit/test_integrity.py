"""Tests for the delete guard."""

from __future__ import annotations

import pytest

from pazuzu.catalog.integrity import check_deletable
from pazuzu.common.errors import InUseError
from pazuzu.common.types import Container, Feature

TARGET = Feature(id=1, name="java")


class TestCheckDeletable:
    def test_unreferenced_feature_is_deletable(self) -> None:
        check_deletable(TARGET, [], [])

    def test_feature_references_block_delete(self) -> None:
        referencing = [Feature(id=3, name="scala"), Feature(id=2, name="kotlin")]
        with pytest.raises(InUseError) as exc_info:
            check_deletable(TARGET, referencing, [])
        assert exc_info.value.by_features == ["kotlin", "scala"]
        assert exc_info.value.by_containers == []

    def test_container_references_block_delete(self) -> None:
        with pytest.raises(InUseError) as exc_info:
            check_deletable(TARGET, [], [Container(id=1, name="backend", features=["java"])])
        assert exc_info.value.by_containers == ["backend"]
        assert "references from containers found: backend" in str(exc_info.value)

    def test_lists_both_kinds_of_referencer(self) -> None:
        with pytest.raises(InUseError) as exc_info:
            check_deletable(
                TARGET,
                [Feature(id=2, name="maven")],
                [Container(name="ci"), Container(name="api")],
            )
        err = exc_info.value
        assert err.name == "java"
        assert err.by_features == ["maven"]
        assert err.by_containers == ["api", "ci"]
