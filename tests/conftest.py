"""Shared fixtures: in-memory database, fake clock and seeded blog data."""

from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from soft_deletes import (
    QueryFilterRegistry,
    SoftDeleteConfig,
    SoftDeleteSession,
    install_soft_delete_filters,
    mapped_classes,
    set_config,
)
from tests.models import Base, Category, Comment, Note, Post, Tag


class FakeClock:
    """Clock returning a fixed time until advanced."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture(autouse=True)
def testing_config():
    """Isolate every test from the global configuration."""
    config = SoftDeleteConfig(environment="testing")
    set_config(config)
    yield config
    set_config(None)


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 1, 15, 9, 30))


@pytest.fixture
def registry():
    registry = QueryFilterRegistry()
    install_soft_delete_filters(registry, mapped_classes(Base))
    return registry


@pytest.fixture
def engine():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    yield engine

    engine.dispose()


@pytest.fixture
def session_factory(engine, registry, clock):
    return sessionmaker(
        bind=engine, class_=SoftDeleteSession, query_filters=registry, clock=clock
    )


@pytest.fixture
def seeded(session_factory):
    """Two categories; the first has two posts, the first post two comments."""
    with session_factory() as session:
        first = Post(
            title="First",
            comments=[Comment(body="Great"), Comment(body="Thanks")],
        )
        second = Post(title="Second")
        news = Category(name="News", posts=[first, second])
        sports = Category(name="Sports", posts=[Post(title="Derby")])
        note = Note(body="Plain row")
        tag = Tag(label="python")
        session.add_all([news, sports, note, tag])
        session.save_changes()

        return SimpleNamespace(
            news_id=news.id,
            sports_id=sports.id,
            first_post_id=first.id,
            second_post_id=second.id,
            comment_ids=[comment.id for comment in first.comments],
            note_id=note.id,
            tag_id=tag.id,
        )
