"""Profile service backing the ``/auth`` endpoints."""

from __future__ import annotations

import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from inspira.core.errors import ApiErrorCode, NotFoundError
from inspira.db.session import transaction
from inspira.models import Comment, Post, Profile, User
from inspira.schemas.payment import CreditHistoryResponse, TransactionResponse
from inspira.schemas.user import MeResponse, ProfileResponse, ProfileUpdate, PublicProfileResponse
from inspira.services import ledger
from inspira.services.identity import AuthContext
from inspira.services.validation import clean_tags

logger = logging.getLogger(__name__)


def get_profile_or_404(db: Session, profile_id: int) -> Profile:
    profile = db.get(Profile, profile_id)
    if profile is None:
        raise NotFoundError(ApiErrorCode.E_PROFILE_NOT_FOUND, "Profile not found")
    return profile


def get_me(db: Session, ctx: AuthContext) -> MeResponse:
    user = db.get(User, ctx.user_id)
    if user is None:
        raise NotFoundError(ApiErrorCode.E_PROFILE_NOT_FOUND, "User not found")
    profile = get_profile_or_404(db, ctx.profile_id)
    return MeResponse(
        id=user.id,
        external_id=user.external_id,
        email=user.email,
        profile=ProfileResponse.model_validate(profile),
    )


def update_profile(db: Session, ctx: AuthContext, update: ProfileUpdate) -> ProfileResponse:
    """Apply the fields present in ``update``; absent fields keep their value."""
    profile = get_profile_or_404(db, ctx.profile_id)
    provided = update.model_fields_set
    with transaction(db):
        if "name" in provided:
            profile.name = update.name
        if "bio" in provided:
            profile.bio = update.bio
        if "expertise_tags" in provided:
            profile.expertise_tags = clean_tags(update.expertise_tags)
        if "interest_tags" in provided:
            profile.interest_tags = clean_tags(update.interest_tags)
    return ProfileResponse.model_validate(profile)


def get_public_profile(db: Session, profile_id: int) -> PublicProfileResponse:
    profile = get_profile_or_404(db, profile_id)
    posts = db.query(func.count(Post.id)).filter(Post.author_id == profile.id).scalar() or 0
    comments = (
        db.query(func.count(Comment.id)).filter(Comment.author_id == profile.id).scalar() or 0
    )
    return PublicProfileResponse(
        id=profile.id,
        name=profile.name,
        image_url=profile.image_url,
        bio=profile.bio,
        expertise_tags=list(profile.expertise_tags or []),
        interest_tags=list(profile.interest_tags or []),
        post_count=int(posts),
        comment_count=int(comments),
        created_at=profile.created_at,
    )


def credit_history(db: Session, ctx: AuthContext) -> CreditHistoryResponse:
    """All ledger rows of the caller, newest first, with the current balance."""
    profile = get_profile_or_404(db, ctx.profile_id)
    transactions = [
        TransactionResponse(
            id=row.id,
            kind=row.kind.value,
            delta=row.delta,
            balance_after=row.balance_after,
            post_id=row.post_id,
            comment_id=row.comment_id,
            note=row.note,
            created_at=row.created_at,
        )
        for row in ledger.history(db, profile.id)
    ]
    return CreditHistoryResponse(transactions=transactions, current_balance=profile.credits)


def delete_account(db: Session, ctx: AuthContext) -> None:
    """Delete the caller's user; the data store cascades to everything they own."""
    user = db.get(User, ctx.user_id)
    if user is None:
        raise NotFoundError(ApiErrorCode.E_PROFILE_NOT_FOUND, "User not found")
    with transaction(db):
        db.delete(user)
    logger.info("Deleted user %s (profile %s)", ctx.user_id, ctx.profile_id)
