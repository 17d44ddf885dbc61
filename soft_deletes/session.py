"""
Session with soft delete semantics.

:class:`SoftDeleteSession` is a drop-in :class:`sqlalchemy.orm.Session` that
intercepts removals, cascades them through the hooks of soft-deletable
models, stamps timestamps, protects ``created_at`` / ``deleted_at`` from
ordinary updates and converts pending deletes into ``deleted_at`` updates on
flush.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Iterable, List, Optional, Set

from sqlalchemy import event, inspect
from sqlalchemy.orm import ORMExecuteState, Session, UOWTransaction
from sqlalchemy.orm.attributes import get_history, set_committed_value
from sqlalchemy.orm.state import InstanceState

from .cascade import CascadeWalk, RemovalMode
from .config import SoftDeleteConfig, get_config
from .exceptions import CapabilityError, MisconfiguredCapabilityError
from .filters import INCLUDE_DELETED, QueryFilterRegistry
from .mixins import SoftDeleteMixin, as_soft_delete, as_timestamped

logger = logging.getLogger(__name__)


class SoftDeleteSession(Session):
    """Unit of work that soft deletes instead of deleting.

    Removal of a model with :class:`~soft_deletes.mixins.SoftDeleteMixin`
    runs its cascade hooks immediately, so every dependent is already marked
    for removal when the session flushes. The flush then rewrites each
    pending delete of a soft-deletable model into an update of
    ``deleted_at``, unless the removal was forced.

    A session instance is not thread-safe and must stay confined to one
    request or operation.

    Example:
        >>> registry = QueryFilterRegistry()
        >>> install_soft_delete_filters(registry, [Category, Post, Comment])
        >>> Session = sessionmaker(
        ...     engine, class_=SoftDeleteSession, query_filters=registry
        ... )
        >>> with Session() as session:
        ...     session.remove(category)        # cascades to posts, comments
        ...     session.save_changes()
        ...     session.force_remove(spam_post)  # physical DELETE, no hooks
        ...     session.save_changes()
    """

    def __init__(
        self,
        *args: Any,
        query_filters: Optional[QueryFilterRegistry] = None,
        clock: Optional[Callable[[], datetime]] = None,
        config: Optional[SoftDeleteConfig] = None,
        **kwargs: Any,
    ):
        """
        Initialize the session.

        Args:
            *args: Passed to :class:`sqlalchemy.orm.Session`
            query_filters: Filters applied to every ORM SELECT; None disables
                filtering for this session
            clock: Callable returning the timestamp written on flush.
                Defaults to the configured wall clock.
            config: Configuration; defaults to the global configuration
            **kwargs: Passed to :class:`sqlalchemy.orm.Session`
        """
        super().__init__(*args, **kwargs)
        self.query_filters = query_filters
        self.config = config or get_config()
        self.clock = clock or self.config.now

        self._force_removed: Set[InstanceState[Any]] = set()
        self._allow_restore = False
        self._walk: Optional[CascadeWalk] = None
        self._rows_affected = 0

    # Removal

    def delete(self, instance: object) -> None:
        """Route the native delete through :meth:`remove`."""
        self.remove(instance)

    def remove(self, entity: Any, mode: RemovalMode = RemovalMode.SOFT) -> None:
        """
        Mark an entity for removal.

        Models without the soft delete capability, and any model removed with
        ``RemovalMode.FORCE``, are physically deleted on flush. Otherwise the
        model's ``load_relations`` and ``on_soft_delete`` hooks run before
        this call returns.

        Args:
            entity: Persistent (or pending) mapped instance
            mode: Removal intent for this call

        Raises:
            sqlalchemy.exc.InvalidRequestError: If the entity is transient
        """
        self.remove_range([entity], mode)

    def remove_range(
        self, entities: Iterable[Any], mode: RemovalMode = RemovalMode.SOFT
    ) -> None:
        """
        Mark several entities for removal.

        Called from a cascade hook, the entities join the running cascade and
        are processed after the hook returns. A hook that raises leaves the
        entities handled so far marked for removal; nothing is flushed.

        Args:
            entities: Mapped instances
            mode: Removal intent for every entity in this call
        """
        entities = list(entities)
        if self._walk is not None:
            self._walk.collect(entities, mode)
            return

        walk = self._walk = CascadeWalk(entities, mode)
        try:
            for entity, entity_mode in walk:
                soft = self._mark_removed(entity, entity_mode)
                if soft is None:
                    continue
                soft.load_relations(self)
                soft.on_soft_delete(self)
        finally:
            self._walk = None

        if len(walk) > len(entities):
            logger.debug(
                f"Cascade removed {len(walk) - len(entities)} dependent(s) "
                f"of {len(entities)} entit(ies)"
            )

    def force_remove(self, entity: Any) -> None:
        """Physically delete an entity on flush, without running hooks."""
        self.remove_range([entity], RemovalMode.FORCE)

    def force_remove_range(self, entities: Iterable[Any]) -> None:
        """Physically delete several entities on flush, without running hooks."""
        self.remove_range(entities, RemovalMode.FORCE)

    def is_force_removed(self, entity: Any) -> bool:
        """Whether the pending removal of ``entity`` is a forced one."""
        return inspect(entity) in self._force_removed

    def _mark_removed(
        self, entity: Any, mode: RemovalMode
    ) -> Optional[SoftDeleteMixin]:
        """Mark one entity deleted; return it when its hooks must run."""
        state = inspect(entity)
        if state.pending:
            # Never flushed, so there is no row to keep
            self.expunge(entity)
            return None

        Session.delete(self, entity)

        if mode is RemovalMode.FORCE:
            self._mark_forced(state)
            return None

        self._force_removed.discard(state)
        soft = as_soft_delete(entity)
        if soft is None or not self.config.soft_delete_enabled:
            return None
        if not self.config.cascade_enabled:
            return None
        return soft

    def _mark_forced(self, state: InstanceState[Any]) -> None:
        self._force_removed.add(state)
        # Instances reached by the mapper's own delete cascade go with it
        for _, _, cascaded_state, _ in state.mapper.cascade_iterator("delete", state):
            self._force_removed.add(cascaded_state)

    # Restore

    def restore(self, entity: Any) -> int:
        """
        Clear ``deleted_at`` and commit immediately.

        Args:
            entity: Soft-deleted instance (load it with the
                ``include_deleted`` execution option)

        Returns:
            Number of rows written by the commit

        Raises:
            CapabilityError: If the entity is not soft-deletable
        """
        return self.restore_range([entity])

    def restore_range(self, entities: Iterable[Any]) -> int:
        """
        Clear ``deleted_at`` on several entities and commit immediately.

        The ``deleted_at`` column is writable for exactly this commit. A
        pending removal of the same instance is cancelled.

        Returns:
            Number of rows written by the commit
        """
        restored: List[SoftDeleteMixin] = []
        for entity in entities:
            soft = as_soft_delete(entity)
            if soft is None:
                raise CapabilityError(entity, "SoftDeleteMixin")
            restored.append(soft)

        try:
            # Loading an expired deleted_at must not flush, or the flush would
            # consume the restore flag before the commit below
            with self.no_autoflush:
                for soft in restored:
                    state = inspect(soft)
                    self._force_removed.discard(state)
                    # Attaches detached instances and cancels a pending delete
                    self.add(soft)
                    soft.deleted_at = None
            self._allow_restore = True
            rows = self.save_changes()
        finally:
            self._allow_restore = False

        logger.debug(f"Restored {len(restored)} entit(ies), {rows} row(s) written")
        return rows

    # Commit

    def save_changes(self) -> int:
        """
        Commit the unit of work.

        Rows written by autoflushes earlier in the same transaction, such as
        those triggered by lazy loads in cascade hooks, are included.

        Returns:
            Number of rows inserted, updated or deleted by the transaction
        """
        self.commit()
        rows, self._rows_affected = self._rows_affected, 0
        return rows

    # Flush pipeline

    def _apply_flush_rules(self) -> None:
        """Stamp, protect and convert tracked entities before a flush."""
        now = self.clock()

        for entity in self.new:
            timestamped = as_timestamped(entity)
            if timestamped is None:
                continue
            self._require_columns(entity, "created_at", "updated_at")
            timestamped.created_at = now
            timestamped.updated_at = now

        # One-shot: only the flush right after a restore may write deleted_at
        allow_restore = self._allow_restore
        self._allow_restore = False
        for entity in self.dirty:
            self._stamp_modified(entity, now, protect_deleted_at=not allow_restore)

        if self.config.soft_delete_enabled:
            for entity in list(self.deleted):
                self._convert_removal(entity, now)
        self._force_removed.clear()

    def _convert_removal(self, entity: Any, now: datetime) -> None:
        soft = as_soft_delete(entity)
        if soft is None or inspect(entity) in self._force_removed:
            return

        self._require_columns(entity, "deleted_at")
        # Re-attaching cancels the pending DELETE; the row is updated instead
        self.add(entity)
        if soft.deleted_at is None:
            soft.deleted_at = now
        self._stamp_modified(entity, now, protect_deleted_at=False)
        logger.debug(f"Soft deleting {entity.__class__.__name__} {inspect(entity).identity}")

    def _stamp_modified(
        self, entity: Any, now: datetime, protect_deleted_at: bool
    ) -> None:
        timestamped = as_timestamped(entity)
        soft = as_soft_delete(entity)
        if timestamped is None and soft is None:
            return
        if not self.is_modified(entity, include_collections=False):
            return

        if timestamped is not None:
            self._protect_column(entity, "created_at")
        if soft is not None and protect_deleted_at:
            self._protect_column(entity, "deleted_at")

        # Nothing left to write once protected columns are reverted
        if timestamped is not None and self.is_modified(
            entity, include_collections=False
        ):
            self._require_columns(entity, "updated_at")
            timestamped.updated_at = now

    def _protect_column(self, entity: Any, key: str) -> None:
        """Drop a pending change to ``key`` so the flush does not write it."""
        self._require_columns(entity, key)
        history = get_history(entity, key)
        if not history.has_changes():
            return

        if history.deleted:
            set_committed_value(entity, key, history.deleted[0])
        else:
            # Previous value was never loaded; expiring discards the change
            self.expire(entity, [key])
        logger.debug(f"Ignored change to {entity.__class__.__name__}.{key}")

    def _require_columns(self, entity: Any, *keys: str) -> None:
        column_attrs = inspect(entity).mapper.column_attrs
        for key in keys:
            if key not in column_attrs:
                raise MisconfiguredCapabilityError(entity, key)


@event.listens_for(SoftDeleteSession, "before_flush")
def _before_flush(
    session: SoftDeleteSession, flush_context: UOWTransaction, instances: Any
) -> None:
    session._apply_flush_rules()


@event.listens_for(SoftDeleteSession, "after_flush")
def _count_rows(session: SoftDeleteSession, flush_context: UOWTransaction) -> None:
    # Still the pre-flush view of new/dirty/deleted here
    modified = [
        entity
        for entity in session.dirty
        if session.is_modified(entity, include_collections=False)
    ]
    session._rows_affected += len(session.new) + len(modified) + len(session.deleted)


@event.listens_for(SoftDeleteSession, "after_rollback")
def _reset_row_count(session: SoftDeleteSession) -> None:
    session._rows_affected = 0


@event.listens_for(SoftDeleteSession, "do_orm_execute")
def _apply_query_filters(execute_state: ORMExecuteState) -> None:
    registry = getattr(execute_state.session, "query_filters", None)
    if not registry:
        return
    # Refreshing attributes of an instance already loaded is never filtered
    if not execute_state.is_select or execute_state.is_column_load:
        return
    if execute_state.execution_options.get(INCLUDE_DELETED, False):
        return

    execute_state.statement = execute_state.statement.options(
        *registry.loader_options()
    )
