"""Reward rules: what each domain event costs or earns, and whether it may proceed."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from inspira.core.errors import (
    ApiErrorCode,
    ForbiddenError,
    InvalidRequestError,
    NotFoundError,
)
from inspira.db.session import transaction
from inspira.models import Comment, HelpfulMark, Post, Profile, TransactionKind
from inspira.services import ledger
from inspira.services.identity import AuthContext

logger = logging.getLogger(__name__)

POST_COST = 5
HELPFUL_REWARD = 10
COMMENT_UPVOTE_REWARD = 5
# Post upvotes are counted but move no credits.
POST_UPVOTE_REWARD = 0


@dataclass(frozen=True)
class CreditPackage:
    """A purchasable bundle of credits. ``price`` is in minor currency units."""

    id: str
    name: str
    credits: int
    price: int

    @property
    def price_in_rupees(self) -> float:
        return self.price / 100

    @property
    def price_per_credit(self) -> float:
        return round(self.price / 100 / self.credits, 3)


CREDIT_PACKAGES: dict[str, CreditPackage] = {
    "starter": CreditPackage(id="starter", name="Starter Pack", credits=50, price=499),
    "value": CreditPackage(id="value", name="Value Pack", credits=150, price=1299),
    "pro": CreditPackage(id="pro", name="Pro Pack", credits=300, price=1999),
}


def resolve_package(package_id: str | None) -> CreditPackage:
    package = CREDIT_PACKAGES.get(package_id or "")
    if package is None:
        raise InvalidRequestError(ApiErrorCode.E_INVALID_PACKAGE, "Invalid package type")
    return package


def ensure_can_afford(profile: Profile, amount: int) -> None:
    """Reject the action when ``profile`` holds fewer than ``amount`` credits."""
    if profile.credits < amount:
        raise InvalidRequestError(
            ApiErrorCode.E_INSUFFICIENT_CREDITS,
            f"Insufficient credits: {amount} required, {profile.credits} available",
        )


def charge_post_creation(db: Session, profile_id: int, post: Post) -> ledger.LedgerEntry:
    """Debit the post fee for an already flushed ``post``.

    The balance is re-checked under the profile lock; a failure here leaves
    the caller's transaction to roll back the post insert as well.
    """
    profile = ledger.lock_profile(db, profile_id)
    ensure_can_afford(profile, POST_COST)
    return ledger.apply_delta(
        db,
        profile_id,
        -POST_COST,
        TransactionKind.POST_COST,
        post_id=post.id,
        note=f"Created post: {post.title}",
    )


def comment_upvote_reward(db: Session, comment: Comment) -> ledger.LedgerEntry:
    return ledger.apply_delta(
        db,
        comment.author_id,
        COMMENT_UPVOTE_REWARD,
        TransactionKind.UPVOTE_REWARD,
        post_id=comment.post_id,
        comment_id=comment.id,
        note="Comment upvoted",
    )


def comment_upvote_reversal(db: Session, comment: Comment) -> ledger.LedgerEntry:
    """Take back an upvote reward without driving the author below zero."""
    return ledger.apply_delta(
        db,
        comment.author_id,
        -COMMENT_UPVOTE_REWARD,
        TransactionKind.UPVOTE_REVERSAL,
        post_id=comment.post_id,
        comment_id=comment.id,
        note="Comment upvote removed",
        floor_at_zero=True,
    )


def mark_helpful(
    db: Session,
    ctx: AuthContext,
    post_id: int,
    comment_id: int | None,
) -> HelpfulMark:
    """Resolve a post by accepting ``comment_id`` as its answer.

    Moves ``HELPFUL_REWARD`` credits from the post author to the comment
    author. Every rule is checked before anything is written, and the mark
    plus both ledger entries commit together.

    Raises:
        InvalidRequestError: Missing comment id, already resolved, own comment,
            or the post author cannot cover the reward.
        NotFoundError: Unknown post, or the comment is not on this post.
        ForbiddenError: The caller does not own the post.
    """
    if comment_id is None:
        raise InvalidRequestError(ApiErrorCode.E_MISSING_FIELD, "commentId is required")

    post = db.get(Post, post_id)
    if post is None:
        raise NotFoundError(ApiErrorCode.E_POST_NOT_FOUND, "Post not found")
    if post.author_id != ctx.profile_id:
        raise ForbiddenError(message="Only the post author can mark a helpful comment")
    if db.query(HelpfulMark.id).filter(HelpfulMark.post_id == post.id).first() is not None:
        raise InvalidRequestError(ApiErrorCode.E_ALREADY_RESOLVED, "Post is already resolved")

    comment = db.get(Comment, comment_id)
    if comment is None or comment.post_id != post.id:
        raise NotFoundError(ApiErrorCode.E_COMMENT_NOT_FOUND, "Comment not found on this post")
    if comment.author_id == post.author_id:
        raise InvalidRequestError(
            ApiErrorCode.E_SELF_REWARD,
            "You cannot mark your own comment as helpful",
        )

    with transaction(db):
        # Lock both balances in id order so opposite transfers cannot deadlock.
        participants = sorted({post.author_id, comment.author_id})
        locked = {pid: ledger.lock_profile(db, pid) for pid in participants}
        ensure_can_afford(locked[post.author_id], HELPFUL_REWARD)

        mark = HelpfulMark(post_id=post.id, comment_id=comment.id, marked_by_id=ctx.profile_id)
        db.add(mark)
        try:
            db.flush()
        except IntegrityError:
            raise InvalidRequestError(
                ApiErrorCode.E_ALREADY_RESOLVED, "Post is already resolved"
            ) from None

        ledger.apply_delta(
            db,
            post.author_id,
            -HELPFUL_REWARD,
            TransactionKind.HELPFUL_REWARD,
            post_id=post.id,
            comment_id=comment.id,
            note=f"Rewarded helpful answer on: {post.title}",
        )
        ledger.apply_delta(
            db,
            comment.author_id,
            HELPFUL_REWARD,
            TransactionKind.HELPFUL_REWARD,
            post_id=post.id,
            comment_id=comment.id,
            note=f"Answer marked helpful on: {post.title}",
        )

    logger.info("Post %s resolved with comment %s", post.id, comment.id)
    return mark
