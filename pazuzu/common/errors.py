"""Exception hierarchy for the feature catalog."""

from __future__ import annotations

from collections.abc import Iterable


def _joined(names: Iterable[str]) -> str:
    return ", ".join(sorted(names))


class CatalogError(Exception):
    """Base exception for all catalog errors."""


class FeatureValidationError(CatalogError):
    """Caller-facing validation failure. Never transient, never retried."""


class EmptyNameError(FeatureValidationError):
    """Feature name is empty or blank."""

    def __init__(self) -> None:
        super().__init__("Feature name is empty")


class DuplicateNameError(FeatureValidationError):
    """Another feature already uses this name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Feature with name {name} already exists")


class NotFoundError(FeatureValidationError):
    """No feature with this name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Feature with name {name} is not found")


class UnresolvedNamesError(FeatureValidationError):
    """One or more names did not resolve to stored features."""

    def __init__(self, missing: Iterable[str]) -> None:
        self.missing = frozenset(missing)
        super().__init__(f"Failed to find features with names: {_joined(self.missing)}")


class CyclicDependencyError(FeatureValidationError):
    """Proposed dependencies would make a feature depend on itself."""

    def __init__(self, subject: str, offenders: Iterable[str]) -> None:
        self.subject = subject
        self.offenders = sorted(offenders)
        super().__init__(
            f"Recursive dependencies found for {subject}: {', '.join(self.offenders)}"
        )


class InUseError(FeatureValidationError):
    """Feature is still referenced by other features or containers."""

    def __init__(
        self, name: str, by_features: Iterable[str], by_containers: Iterable[str]
    ) -> None:
        self.name = name
        self.by_features = sorted(by_features)
        self.by_containers = sorted(by_containers)
        parts = []
        if self.by_features:
            parts.append(f"references found: {', '.join(self.by_features)}")
        if self.by_containers:
            parts.append(f"references from containers found: {', '.join(self.by_containers)}")
        super().__init__(f"Can't delete feature {name}, " + "; ".join(parts))


class StoreError(CatalogError):
    """Feature store infrastructure failure (connectivity, unexpected constraint)."""


class ConfigError(CatalogError):
    """Errors related to configuration loading or validation."""
