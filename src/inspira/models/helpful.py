"""Model recording the accepted answer of a post."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inspira.db.session import Base
from inspira.db.time import CreatedAtMixin

if TYPE_CHECKING:
    from .comment import Comment
    from .post import Post


class HelpfulMark(CreatedAtMixin, Base):
    """The single comment a post author marked as helpful.

    The unique ``post_id`` is what makes resolving a post a one-shot action.
    """

    __tablename__ = "helpful_mark"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("post.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    # Outlives the comment so a resolved post stays resolved.
    comment_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("comment.id", ondelete="SET NULL"),
        nullable=True,
    )
    marked_by_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("profile.id", ondelete="CASCADE"),
        nullable=False,
    )

    post: Mapped[Post] = relationship("Post", back_populates="helpful_mark")
    comment: Mapped[Comment | None] = relationship("Comment")
