#!/usr/bin/env python3
"""
Blog Example - Soft Deletes

Demonstrates soft delete patterns on a Category -> Post -> Comment blog:
- Removing a category soft deletes its posts and their comments
- Soft-deleted rows disappear from ordinary reads
- Force removal physically deletes a row without cascading
- Restore brings a single row back
"""

from datetime import datetime

from sqlalchemy import Column, ForeignKey, Integer, String, create_engine, select
from sqlalchemy.orm import declarative_base, relationship, sessionmaker

from soft_deletes import (
    ModelMixin,
    QueryFilterRegistry,
    SoftDeleteSession,
    install_soft_delete_filters,
    mapped_classes,
)

Base = declarative_base()


class Category(Base, ModelMixin):
    """Blog category that cascades to its posts."""

    __tablename__ = "categories"
    __soft_delete_cascade__ = ["posts"]

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    posts = relationship("Post", back_populates="category")


class Post(Base, ModelMixin):
    """Blog post; the hooks are written out by hand."""

    __tablename__ = "posts"

    id = Column(Integer, primary_key=True)
    title = Column(String(200), nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id"))
    category = relationship("Category", back_populates="posts")
    comments = relationship("Comment", back_populates="post")

    def load_relations(self, session):
        # Touching the collection loads it once
        self.comments

    def on_soft_delete(self, session):
        session.remove_range(self.comments)


class Comment(Base, ModelMixin):
    """Comment on a post. Nothing depends on it."""

    __tablename__ = "comments"

    id = Column(Integer, primary_key=True)
    body = Column(String(500), nullable=False)
    post_id = Column(Integer, ForeignKey("posts.id"))
    post = relationship("Post", back_populates="comments")


def count(session, model) -> str:
    active = len(session.scalars(select(model)).all())
    total = len(session.scalars(model.select_all()).all())
    return f"{active} active / {total} stored"


def demonstrate_soft_delete() -> None:
    """Show soft delete functionality."""
    print("🗑️  Soft Deletes Blog Example\n")

    # Setup database
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    registry = QueryFilterRegistry()
    install_soft_delete_filters(registry, mapped_classes(Base))
    Session = sessionmaker(bind=engine, class_=SoftDeleteSession, query_filters=registry)
    session = Session()

    # 1. Create test data
    print("1️⃣ Creating Test Data:")
    news = Category(
        name="News",
        posts=[
            Post(
                title="Release day",
                comments=[Comment(body="Congrats!"), Comment(body="Finally")],
            ),
            Post(title="Roadmap"),
        ],
    )
    session.add(news)
    rows = session.save_changes()

    print(f"  ✓ Inserted {rows} rows")
    print(f"  ✓ created_at stamped: {news.created_at:%Y-%m-%d %H:%M}\n")

    # 2. Cascade soft delete
    print("2️⃣ Cascade Soft Delete:")
    session.remove(news)
    rows = session.save_changes()

    print(f"  ✓ Soft deleted category and dependents ({rows} rows updated)")
    print(f"  Categories: {count(session, Category)}")
    print(f"  Posts: {count(session, Post)}")
    print(f"  Comments: {count(session, Comment)}\n")

    # 3. Restore
    print("3️⃣ Restoring Soft-Deleted Record:")
    deleted_post = session.scalars(
        Post.select_deleted().where(Post.title == "Roadmap")
    ).one()
    session.restore(deleted_post)

    print(f"  ✓ Restored post '{deleted_post.title}'")
    print(f"  Posts: {count(session, Post)}")
    print("  Category stays deleted: restore does not cascade\n")

    # 4. Force delete
    print("4️⃣ Force Delete:")
    comment = session.scalars(Comment.select_deleted()).first()
    session.force_remove(comment)
    session.save_changes()

    print("  ✓ Physically deleted one comment")
    print(f"  Comments: {count(session, Comment)}\n")

    # 5. Protected columns
    print("5️⃣ Protected Columns:")
    deleted_post.created_at = datetime(2000, 1, 1)
    deleted_post.deleted_at = datetime(2000, 1, 1)
    session.save_changes()

    print(f"  created_at unchanged: {deleted_post.created_at.year != 2000}")
    print(f"  still active: {deleted_post.deleted_at is None}")

    session.close()
    print("\n✅ Soft delete demonstration complete!")


if __name__ == "__main__":
    demonstrate_soft_delete()
