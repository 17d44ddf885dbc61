"""
Global query filters.

A :class:`QueryFilterRegistry` is filled once at startup with one boolean
criterion per mapped class. :class:`~soft_deletes.session.SoftDeleteSession`
attaches the registered criteria to every ORM SELECT it executes, which keeps
soft-deleted rows out of ordinary reads, relationship loads and ``get()``.
"""

import logging
from typing import Any, Dict, Iterable, Iterator, List, Optional, Type

from sqlalchemy import and_, inspect
from sqlalchemy.orm import with_loader_criteria
from sqlalchemy.sql.elements import ColumnElement

logger = logging.getLogger(__name__)

# Execution option that bypasses every registered filter
INCLUDE_DELETED = "include_deleted"


class QueryFilterRegistry:
    """Per-class filter criteria, combined with AND when registered twice.

    Example:
        >>> registry = QueryFilterRegistry()
        >>> registry.add(Post, Post.tenant_id == 42)
        >>> install_soft_delete_filters(registry, [Category, Post, Comment])
        >>> registry.criteria_for(Post)  # tenant_id = 42 AND deleted_at IS NULL
    """

    def __init__(self) -> None:
        self._criteria: Dict[Type[Any], ColumnElement[bool]] = {}

    def add(self, entity_class: Type[Any], criteria: ColumnElement[bool]) -> None:
        """
        Register a filter for a mapped class.

        Args:
            entity_class: Mapped class the criteria applies to
            criteria: SQL boolean expression built from the class' columns
        """
        existing = self._criteria.get(entity_class)
        if existing is None:
            self._criteria[entity_class] = criteria
        else:
            self._criteria[entity_class] = and_(existing, criteria)

    def criteria_for(self, entity_class: Type[Any]) -> Optional[ColumnElement[bool]]:
        return self._criteria.get(entity_class)

    def loader_options(self) -> List[Any]:
        """Loader options applying every registered filter to a statement."""
        return [
            with_loader_criteria(entity_class, criteria, include_aliases=True)
            for entity_class, criteria in self._criteria.items()
        ]

    def __contains__(self, entity_class: object) -> bool:
        return entity_class in self._criteria

    def __iter__(self) -> Iterator[Type[Any]]:
        return iter(self._criteria)

    def __len__(self) -> int:
        return len(self._criteria)


def mapped_classes(base_class: Type[Any]) -> List[Type[Any]]:
    """
    List the classes mapped on a declarative base.

    Args:
        base_class: The declarative base class

    Returns:
        Mapped classes in registration order
    """
    return [mapper.class_ for mapper in base_class.registry.mappers]


def install_soft_delete_filters(
    registry: QueryFilterRegistry, entity_classes: Iterable[Type[Any]]
) -> List[Type[Any]]:
    """
    Register ``deleted_at IS NULL`` for every soft-deletable class given.

    Classes without the soft delete capability and classes that are not
    mapped (abstract bases, plain mixins) are skipped. Existing filters for a
    class are kept and combined with the new one.

    Args:
        registry: Registry to fill
        entity_classes: Explicit list of candidate classes

    Returns:
        The classes that received the filter
    """
    from .mixins import SoftDeleteMixin

    installed: List[Type[Any]] = []
    for entity_class in entity_classes:
        if not issubclass(entity_class, SoftDeleteMixin):
            continue
        if inspect(entity_class, raiseerr=False) is None:
            continue

        registry.add(entity_class, entity_class.deleted_at.is_(None))
        installed.append(entity_class)
        logger.debug(f"Installed soft delete filter on {entity_class.__name__}")

    return installed
