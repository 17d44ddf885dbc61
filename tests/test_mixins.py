"""Tests for the capability mixins."""

from datetime import datetime
from unittest.mock import Mock

from soft_deletes import (
    ModelMixin,
    SoftDeleteMixin,
    as_soft_delete,
    as_timestamped,
)
from tests.models import Category, Comment, Node, Note, Post, Tag


class TestCapabilities:
    """Test capability discovery."""

    def test_model_mixin_has_both(self):
        category = Category(name="News")
        assert isinstance(category, ModelMixin)
        assert as_soft_delete(category) is category
        assert as_timestamped(category) is category

    def test_timestamps_only(self):
        tag = Tag(label="python")
        assert as_timestamped(tag) is tag
        assert as_soft_delete(tag) is None

    def test_soft_delete_only(self):
        node = Node(name="leaf")
        assert as_soft_delete(node) is node
        assert as_timestamped(node) is None

    def test_no_capability(self):
        note = Note(body="plain")
        assert as_soft_delete(note) is None
        assert as_timestamped(note) is None
        assert as_soft_delete(None) is None

    def test_mixin_columns(self):
        assert "created_at" in Tag.__table__.c
        assert "updated_at" in Tag.__table__.c
        assert "deleted_at" not in Tag.__table__.c
        assert Category.__table__.c.deleted_at.nullable
        assert not Category.__table__.c.created_at.nullable


class TestSoftDeleteMixin:
    """Test SoftDeleteMixin behaviour without a database."""

    def test_is_deleted(self):
        comment = Comment(body="hello")
        assert not comment.is_deleted

        comment.deleted_at = datetime(2024, 1, 1)
        assert comment.is_deleted

    def test_default_hooks_remove_listed_relationships(self):
        first, second = Post(title="a"), Post(title="b")
        category = Category(name="News", posts=[first, second])
        session = Mock()

        category.load_relations(session)
        category.on_soft_delete(session)

        session.remove_range.assert_called_once_with([first, second])

    def test_scalar_relationship_is_a_single_target(self):
        target = Node(name="target")
        node = Node(name="source", next=target)
        session = Mock()

        node.on_soft_delete(session)

        session.remove_range.assert_called_once_with([target])

    def test_empty_relationships_do_not_call_session(self):
        session = Mock()

        Node(name="alone").on_soft_delete(session)
        Category(name="Empty").on_soft_delete(session)

        session.remove_range.assert_not_called()

    def test_leaf_has_no_cascade(self):
        assert Comment.__soft_delete_cascade__ == []
        assert SoftDeleteMixin.__soft_delete_cascade__ == []

    def test_select_statements(self):
        active = str(Comment.select_active())
        deleted = Comment.select_deleted()
        everything = Comment.select_all()

        assert "comments.deleted_at IS NULL" in active
        assert "comments.deleted_at IS NOT NULL" in str(deleted)
        assert deleted.get_execution_options()["include_deleted"] is True
        assert "WHERE" not in str(everything)
        assert everything.get_execution_options()["include_deleted"] is True
