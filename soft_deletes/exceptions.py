"""Exceptions for soft delete operations."""

from typing import Any, Optional


def _describe(entity: Any) -> str:
    identity = getattr(entity, "id", None)
    name = entity.__class__.__name__
    return f"{name} {identity}" if identity is not None else name


class SoftDeleteError(Exception):
    """Base exception for soft delete operations."""

    def __init__(self, message: str, entity: Optional[Any] = None):
        self.entity = entity
        super().__init__(message)


class CapabilityError(SoftDeleteError):
    """Raised when an operation needs a capability the entity does not have."""

    def __init__(self, entity: Any, capability: str):
        self.capability = capability
        super().__init__(
            f"{_describe(entity)} does not implement {capability}",
            entity=entity,
        )


class MisconfiguredCapabilityError(SoftDeleteError):
    """Raised at flush time when a capability column is not a mapped column."""

    def __init__(self, entity: Any, attribute: str):
        self.attribute = attribute
        super().__init__(
            f"{_describe(entity)} declares a capability but '{attribute}' "
            "is not a mapped column attribute",
            entity=entity,
        )
