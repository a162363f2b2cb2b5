"""Comment service: answers, replies and the rewarded comment upvote."""

from __future__ import annotations

import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from inspira.core.errors import ApiErrorCode, NotFoundError
from inspira.db.session import transaction
from inspira.models import Comment, CommentUpvote
from inspira.schemas.comment import CommentDetailResponse, CommentResponse
from inspira.schemas.common import AuthorSummary
from inspira.schemas.post import UpvoteResponse
from inspira.services import rewards
from inspira.services.identity import AuthContext
from inspira.services.posts import get_post_or_404
from inspira.services.toggle import toggle
from inspira.services.validation import require_text

logger = logging.getLogger(__name__)


def _counts(db: Session, comment_id: int) -> tuple[int, int]:
    upvotes = (
        db.query(func.count(CommentUpvote.voter_id))
        .filter(CommentUpvote.comment_id == comment_id)
        .scalar()
    )
    replies = db.query(func.count(Comment.id)).filter(Comment.parent_id == comment_id).scalar()
    return int(upvotes or 0), int(replies or 0)


def to_comment_response(db: Session, comment: Comment) -> CommentResponse:
    upvotes, replies = _counts(db, comment.id)
    return CommentResponse(
        id=comment.id,
        content=comment.content,
        author_id=comment.author_id,
        author=AuthorSummary.model_validate(comment.author),
        post_id=comment.post_id,
        parent_id=comment.parent_id,
        upvote_count=upvotes,
        reply_count=replies,
        created_at=comment.created_at,
    )


def to_comment_detail(db: Session, comment: Comment) -> CommentDetailResponse:
    base = to_comment_response(db, comment)
    return CommentDetailResponse(
        **base.model_dump(),
        replies=[to_comment_response(db, reply) for reply in comment.replies],
    )


def get_comment_or_404(db: Session, comment_id: int) -> Comment:
    comment = db.get(Comment, comment_id)
    if comment is None:
        raise NotFoundError(ApiErrorCode.E_COMMENT_NOT_FOUND, "Comment not found")
    return comment


def get_comment(db: Session, comment_id: int) -> CommentDetailResponse:
    return to_comment_detail(db, get_comment_or_404(db, comment_id))


def list_post_comments(db: Session, post_id: int) -> list[CommentDetailResponse]:
    """Top-level comments of a post, oldest first, each with its direct replies."""
    post = get_post_or_404(db, post_id)
    comments = (
        db.query(Comment)
        .filter(Comment.post_id == post.id, Comment.parent_id.is_(None))
        .order_by(Comment.created_at.asc(), Comment.id.asc())
        .all()
    )
    return [to_comment_detail(db, comment) for comment in comments]


def list_author_comments(db: Session, profile_id: int) -> list[CommentResponse]:
    comments = (
        db.query(Comment)
        .filter(Comment.author_id == profile_id)
        .order_by(Comment.created_at.desc(), Comment.id.desc())
        .all()
    )
    return [to_comment_response(db, comment) for comment in comments]


def add_comment(
    db: Session, ctx: AuthContext, post_id: int, content: str | None
) -> CommentResponse:
    """Answer a post. Comments cost nothing."""
    content = require_text(content, "content")
    post = get_post_or_404(db, post_id)
    with transaction(db):
        comment = Comment(content=content, author_id=ctx.profile_id, post_id=post.id)
        db.add(comment)
        db.flush()
    logger.info("Profile %s commented %s on post %s", ctx.profile_id, comment.id, post.id)
    return to_comment_response(db, comment)


def add_reply(
    db: Session, ctx: AuthContext, comment_id: int, content: str | None
) -> CommentResponse:
    """Reply to a comment; the reply belongs to the same post."""
    content = require_text(content, "content")
    parent = get_comment_or_404(db, comment_id)
    with transaction(db):
        reply = Comment(
            content=content,
            author_id=ctx.profile_id,
            post_id=parent.post_id,
            parent_id=parent.id,
        )
        db.add(reply)
        db.flush()
    logger.info("Profile %s replied %s to comment %s", ctx.profile_id, reply.id, parent.id)
    return to_comment_response(db, reply)


def upvote_comment(db: Session, ctx: AuthContext, comment_id: int) -> UpvoteResponse:
    """Toggle the caller's upvote on a comment and reward or charge back its author."""
    comment = get_comment_or_404(db, comment_id)
    with transaction(db):
        result = toggle(
            db,
            CommentUpvote,
            "comment_id",
            comment.id,
            ctx.profile_id,
            on_vote=lambda: rewards.comment_upvote_reward(db, comment),
            on_unvote=lambda: rewards.comment_upvote_reversal(db, comment),
        )
    return UpvoteResponse(upvotes=result.count, removed=not result.voted)
