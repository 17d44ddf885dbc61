"""
SQLAlchemy mixins for timestamps and soft delete functionality.

These mixins declare which capabilities a model has. The session queries the
capabilities through :func:`as_timestamped` and :func:`as_soft_delete`; a
model may have either, both or neither.
"""

import logging
from collections.abc import Iterable
from datetime import datetime
from typing import TYPE_CHECKING, Any, List, Optional

from sqlalchemy import DateTime, Select, select
from sqlalchemy.orm import Mapped, mapped_column

from .filters import INCLUDE_DELETED

if TYPE_CHECKING:
    from .async_session import AsyncSoftDeleteSession
    from .session import SoftDeleteSession

logger = logging.getLogger(__name__)


class TimestampsMixin:
    """
    Mixin adding ``created_at`` and ``updated_at`` columns.

    Both columns are stamped by :class:`~soft_deletes.session.SoftDeleteSession`
    when the row is flushed; ``created_at`` is never written again after the
    first insert.

    Usage:
        class Tag(Base, TimestampsMixin):
            __tablename__ = "tags"
            id: Mapped[int] = mapped_column(primary_key=True)
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, active_history=True
    )
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class SoftDeleteMixin:
    """
    Mixin to add soft delete functionality to SQLAlchemy models.

    Provides:
    - The ``deleted_at`` column (None while the row is alive)
    - Cascade hooks the session calls before soft deleting the row
    - Statement helpers for active, deleted and all rows

    Dependents are declared by listing relationship names in
    ``__soft_delete_cascade__``; models with unusual loading needs override
    :meth:`load_relations` and :meth:`on_soft_delete` instead.

    Usage:
        class Post(Base, SoftDeleteMixin):
            __tablename__ = "posts"
            __soft_delete_cascade__ = ["comments"]

            id: Mapped[int] = mapped_column(primary_key=True)
            comments: Mapped[List["Comment"]] = relationship(back_populates="post")
    """

    # Allow the plain class-level cascade list next to Mapped[] annotations
    __allow_unmapped__ = True

    # Override this in models to name the relationships that cascade
    __soft_delete_cascade__: List[str] = []

    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True, default=None, index=True, active_history=True
    )

    @property
    def is_deleted(self) -> bool:
        """Check if this record is soft deleted."""
        return self.deleted_at is not None

    def _cascade_targets(self) -> List[Any]:
        targets: List[Any] = []
        for relationship_name in self.__soft_delete_cascade__:
            if not hasattr(self, relationship_name):
                logger.warning(
                    f"{self.__class__.__name__} lists unknown cascade "
                    f"relationship '{relationship_name}'"
                )
                continue

            related = getattr(self, relationship_name)
            if related is None:
                continue

            # Collections (including dynamic relationships) vs scalar references
            if isinstance(related, Iterable):
                targets.extend(related)
            else:
                targets.append(related)
        return targets

    def load_relations(self, session: "SoftDeleteSession") -> None:
        """
        Load the relationships needed by :meth:`on_soft_delete`.

        Accessing a relationship loads it once; collections that are already
        loaded are left untouched, so calling this twice is harmless.

        Args:
            session: Session performing the removal
        """
        for relationship_name in self.__soft_delete_cascade__:
            getattr(self, relationship_name, None)

    def on_soft_delete(self, session: "SoftDeleteSession") -> None:
        """
        Remove the dependents that disappear together with this record.

        Removals must go through ``session`` so they join the running cascade.

        Args:
            session: Session performing the removal
        """
        targets = self._cascade_targets()
        if targets:
            session.remove_range(targets)

    async def load_relations_async(self, session: "AsyncSoftDeleteSession") -> None:
        """Async variant of :meth:`load_relations`."""
        await session.run_sync(lambda sync_session: self.load_relations(sync_session))

    async def on_soft_delete_async(self, session: "AsyncSoftDeleteSession") -> None:
        """Async variant of :meth:`on_soft_delete`."""
        await session.run_sync(lambda sync_session: self.on_soft_delete(sync_session))

    @classmethod
    def select_active(cls) -> Select[Any]:
        """Statement for active (non-deleted) records only."""
        return select(cls).where(cls.deleted_at.is_(None))

    @classmethod
    def select_deleted(cls) -> Select[Any]:
        """Statement for soft-deleted records only, bypassing query filters."""
        return (
            select(cls)
            .where(cls.deleted_at.is_not(None))
            .execution_options(**{INCLUDE_DELETED: True})
        )

    @classmethod
    def select_all(cls) -> Select[Any]:
        """Statement for all records including deleted."""
        return select(cls).execution_options(**{INCLUDE_DELETED: True})


class ModelMixin(TimestampsMixin, SoftDeleteMixin):
    """Timestamps and soft delete together."""


def as_soft_delete(entity: Any) -> Optional[SoftDeleteMixin]:
    """Return ``entity`` as a soft-deletable model, or None."""
    if isinstance(entity, SoftDeleteMixin):
        return entity
    return None


def as_timestamped(entity: Any) -> Optional[TimestampsMixin]:
    """Return ``entity`` as a timestamped model, or None."""
    if isinstance(entity, TimestampsMixin):
        return entity
    return None
