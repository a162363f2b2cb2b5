"""SQLAlchemy models for posts and their categories."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import JSON, Column, ForeignKey, Integer, String, Table, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inspira.db.session import Base
from inspira.db.time import CreatedAtMixin

if TYPE_CHECKING:
    from .comment import Comment
    from .helpful import HelpfulMark
    from .user import Profile
    from .vote import PostUpvote


post_category = Table(
    "post_category",
    Base.metadata,
    Column("post_id", ForeignKey("post.id", ondelete="CASCADE"), primary_key=True),
    Column("category_id", ForeignKey("category.id", ondelete="CASCADE"), primary_key=True),
)


class Category(Base):
    """Topic label attached to posts, addressed by slug."""

    __tablename__ = "category"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)


class Post(CreatedAtMixin, Base):
    """A question or knowledge item. Creating one costs credits."""

    __tablename__ = "post"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    author_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("profile.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    image_urls: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    video_urls: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)

    author: Mapped[Profile] = relationship("Profile")
    categories: Mapped[list[Category]] = relationship(
        "Category",
        secondary=post_category,
        order_by="Category.slug",
    )
    comments: Mapped[list[Comment]] = relationship(
        "Comment",
        back_populates="post",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    upvotes: Mapped[list[PostUpvote]] = relationship(
        "PostUpvote",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    # Set once when the author accepts an answer; never cleared.
    helpful_mark: Mapped[HelpfulMark | None] = relationship(
        "HelpfulMark",
        back_populates="post",
        cascade="all, delete-orphan",
        passive_deletes=True,
        uselist=False,
    )
