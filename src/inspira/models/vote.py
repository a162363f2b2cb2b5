"""Models capturing upvotes on posts and comments."""

from sqlalchemy import ForeignKey, Index, Integer
from sqlalchemy.orm import Mapped, mapped_column

from inspira.db.session import Base
from inspira.db.time import CreatedAtMixin


class PostUpvote(CreatedAtMixin, Base):
    """One profile's upvote on a post."""

    __tablename__ = "post_upvote"
    __table_args__ = (Index("ix_post_upvote_post_id", "post_id"),)

    # Composite primary key prevents duplicate upvotes from the same profile.
    post_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("post.id", ondelete="CASCADE"),
        primary_key=True,
    )
    voter_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("profile.id", ondelete="CASCADE"),
        primary_key=True,
    )


class CommentUpvote(CreatedAtMixin, Base):
    """One profile's upvote on a comment. Rewards the comment author."""

    __tablename__ = "comment_upvote"
    __table_args__ = (Index("ix_comment_upvote_comment_id", "comment_id"),)

    comment_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("comment.id", ondelete="CASCADE"),
        primary_key=True,
    )
    voter_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("profile.id", ondelete="CASCADE"),
        primary_key=True,
    )
