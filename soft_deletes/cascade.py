"""
Removal intent and the cascade worklist.

Cascade hooks ask the session to remove dependents while the session is
already removing their owner. Instead of recursing, the outermost removal
owns a :class:`CascadeWalk` and nested removal calls only enqueue into it.
"""

from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Tuple


class RemovalMode(str, Enum):
    """How a removal call wants an entity to disappear."""

    SOFT = "soft"  # Stamp deleted_at and cascade through hooks
    FORCE = "force"  # Physically delete, no hooks

    def __str__(self) -> str:
        return self.value


class CascadeWalk:
    """Depth-first worklist of pending removals.

    Iterating yields ``(entity, mode)`` pairs in preorder. Entities collected
    while an item is being processed become that item's children: they are
    visited next, in the order they were collected. An entity is yielded at
    most once per walk, so cyclic hook graphs terminate.

    Example:
        >>> walk = CascadeWalk([category], RemovalMode.SOFT)
        >>> for entity, mode in walk:
        ...     walk.collect(children_of(entity), mode)
    """

    def __init__(self, entities: Iterable[Any], mode: RemovalMode):
        self._stack: List[Tuple[Any, RemovalMode]] = []
        self._batch: List[Tuple[Any, RemovalMode]] = []
        self._seen: Dict[int, Any] = {}
        self.collect(entities, mode)

    def collect(self, entities: Iterable[Any], mode: RemovalMode) -> None:
        """Queue entities below the item currently being processed."""
        for entity in entities:
            if entity is not None:
                self._batch.append((entity, RemovalMode(mode)))

    def seen(self, entity: Any) -> bool:
        """Whether ``entity`` was already yielded by this walk."""
        return id(entity) in self._seen

    def __len__(self) -> int:
        return len(self._seen)

    def __iter__(self) -> Iterator[Tuple[Any, RemovalMode]]:
        while True:
            # Reversed so the first collected entity is popped first
            self._stack.extend(reversed(self._batch))
            self._batch = []
            if not self._stack:
                return

            entity, mode = self._stack.pop()
            if self.seen(entity):
                continue
            # Keep a reference so ids cannot be recycled during the walk
            self._seen[id(entity)] = entity
            yield entity, mode
