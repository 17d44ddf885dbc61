"""
Soft Deletes - soft delete semantics for SQLAlchemy sessions.

Instead of physically removing rows, soft-deletable models receive a
``deleted_at`` timestamp and disappear from ordinary reads while remaining
restorable.

Key Features
------------
* **Capability mixins**: ``TimestampsMixin``, ``SoftDeleteMixin`` or both
* **Cascades**: removing a model removes its declared dependents
* **Force delete**: explicit physical removal that skips the cascade
* **Query filters**: soft-deleted rows are hidden from every ORM SELECT
* **Restore**: clear ``deleted_at`` and commit in one call
* **Asyncio**: the same API on top of ``AsyncSession``

Quick Start
-----------
>>> from soft_deletes import (
...     ModelMixin, QueryFilterRegistry, SoftDeleteSession,
...     install_soft_delete_filters,
... )
>>>
>>> class Category(Base, ModelMixin):
...     __tablename__ = "categories"
...     __soft_delete_cascade__ = ["posts"]
...     id: Mapped[int] = mapped_column(primary_key=True)
...     posts: Mapped[List["Post"]] = relationship(back_populates="category")
>>>
>>> registry = QueryFilterRegistry()
>>> install_soft_delete_filters(registry, [Category, Post, Comment])
>>> Session = sessionmaker(engine, class_=SoftDeleteSession, query_filters=registry)
>>>
>>> with Session() as session:
...     session.remove(session.get(Category, 1))
...     session.save_changes()
"""

__version__ = "1.0.0"

from .async_session import AsyncSoftDeleteSession
from .cascade import CascadeWalk, RemovalMode
from .config import SoftDeleteConfig, configure, get_config, local_now, set_config
from .exceptions import (
    CapabilityError,
    MisconfiguredCapabilityError,
    SoftDeleteError,
)
from .filters import (
    INCLUDE_DELETED,
    QueryFilterRegistry,
    install_soft_delete_filters,
    mapped_classes,
)
from .mixins import (
    ModelMixin,
    SoftDeleteMixin,
    TimestampsMixin,
    as_soft_delete,
    as_timestamped,
)
from .session import SoftDeleteSession

__all__ = [
    # Mixins
    "TimestampsMixin",
    "SoftDeleteMixin",
    "ModelMixin",
    "as_soft_delete",
    "as_timestamped",
    # Sessions
    "SoftDeleteSession",
    "AsyncSoftDeleteSession",
    "RemovalMode",
    "CascadeWalk",
    # Query filters
    "QueryFilterRegistry",
    "install_soft_delete_filters",
    "mapped_classes",
    "INCLUDE_DELETED",
    # Configuration
    "SoftDeleteConfig",
    "get_config",
    "set_config",
    "configure",
    "local_now",
    # Exceptions
    "SoftDeleteError",
    "CapabilityError",
    "MisconfiguredCapabilityError",
]
