"""
Asyncio variant of the soft delete session.

:class:`AsyncSoftDeleteSession` proxies a
:class:`~soft_deletes.session.SoftDeleteSession`, so the flush pipeline and
query filters are shared; only the removal walk is re-implemented so that the
async cascade hooks can be awaited.
"""

import logging
from typing import Any, Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from .cascade import CascadeWalk, RemovalMode
from .session import SoftDeleteSession

logger = logging.getLogger(__name__)


class AsyncSoftDeleteSession(AsyncSession):
    """Asyncio session with soft delete semantics.

    Hooks run one after another, depth-first; dependents are never removed
    concurrently. Cancelling the task running a removal propagates
    :class:`asyncio.CancelledError` and leaves the entities handled so far
    marked for removal but unflushed; discard the session afterwards.

    Example:
        >>> Session = async_sessionmaker(
        ...     engine, class_=AsyncSoftDeleteSession, query_filters=registry
        ... )
        >>> async with Session() as session:
        ...     await session.remove(category)
        ...     await session.save_changes()
    """

    sync_session_class = SoftDeleteSession

    sync_session: SoftDeleteSession

    async def remove(self, entity: Any, mode: RemovalMode = RemovalMode.SOFT) -> None:
        """Async variant of :meth:`SoftDeleteSession.remove`."""
        await self.remove_range([entity], mode)

    async def remove_range(
        self, entities: Iterable[Any], mode: RemovalMode = RemovalMode.SOFT
    ) -> None:
        """Async variant of :meth:`SoftDeleteSession.remove_range`."""
        entities = list(entities)
        sync_session = self.sync_session
        if sync_session._walk is not None:
            sync_session._walk.collect(entities, mode)
            return

        walk = sync_session._walk = CascadeWalk(entities, mode)
        try:
            for entity, entity_mode in walk:
                soft = await self.run_sync(
                    SoftDeleteSession._mark_removed, entity, entity_mode
                )
                if soft is None:
                    continue
                await soft.load_relations_async(self)
                await soft.on_soft_delete_async(self)
        finally:
            sync_session._walk = None

        if len(walk) > len(entities):
            logger.debug(
                f"Cascade removed {len(walk) - len(entities)} dependent(s) "
                f"of {len(entities)} entit(ies)"
            )

    async def force_remove(self, entity: Any) -> None:
        """Async variant of :meth:`SoftDeleteSession.force_remove`."""
        await self.remove_range([entity], RemovalMode.FORCE)

    async def force_remove_range(self, entities: Iterable[Any]) -> None:
        """Async variant of :meth:`SoftDeleteSession.force_remove_range`."""
        await self.remove_range(entities, RemovalMode.FORCE)

    def is_force_removed(self, entity: Any) -> bool:
        return self.sync_session.is_force_removed(entity)

    async def restore(self, entity: Any) -> int:
        """Async variant of :meth:`SoftDeleteSession.restore`."""
        return await self.run_sync(SoftDeleteSession.restore, entity)

    async def restore_range(self, entities: Iterable[Any]) -> int:
        """Async variant of :meth:`SoftDeleteSession.restore_range`."""
        return await self.run_sync(SoftDeleteSession.restore_range, list(entities))

    async def save_changes(self) -> int:
        """Async variant of :meth:`SoftDeleteSession.save_changes`."""
        return await self.run_sync(SoftDeleteSession.save_changes)
