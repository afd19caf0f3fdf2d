"""Referential integrity check for feature deletion."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pazuzu.common.errors import InUseError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from pazuzu.common.types import Container, Feature


def check_deletable(
    target: Feature,
    referencing_features: Sequence[Feature],
    referencing_containers: Sequence[Container],
) -> None:
    """Raise InUseError naming every referencer of either kind."""
    if referencing_features or referencing_containers:
        raise InUseError(
            target.name,
            by_features=[f.name for f in referencing_features],
            by_containers=[c.name for c in referencing_containers],
        )
