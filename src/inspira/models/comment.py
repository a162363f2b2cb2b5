"""SQLAlchemy model for answers and nested replies."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inspira.db.session import Base
from inspira.db.time import CreatedAtMixin

if TYPE_CHECKING:
    from .post import Post
    from .user import Profile
    from .vote import CommentUpvote


class Comment(CreatedAtMixin, Base):
    """Answer to a post; ``parent_id`` makes it a reply to another comment."""

    __tablename__ = "comment"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    author_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("profile.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    post_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("post.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    parent_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("comment.id", ondelete="CASCADE"),
        nullable=True,
    )

    author: Mapped[Profile] = relationship("Profile")
    post: Mapped[Post] = relationship("Post", back_populates="comments")
    parent: Mapped[Comment | None] = relationship(
        "Comment",
        remote_side=[id],
        back_populates="replies",
    )
    replies: Mapped[list[Comment]] = relationship(
        "Comment",
        back_populates="parent",
        order_by="Comment.id",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    upvotes: Mapped[list[CommentUpvote]] = relationship(
        "CommentUpvote",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
