# src/inspira/api/v1/endpoints/auth.py
"""Profile endpoints for the authenticated user."""

from fastapi import APIRouter, status

from inspira.api.v1.dependencies import AuthDep, SessionDep
from inspira.schemas.comment import CommentResponse
from inspira.schemas.payment import CreditHistoryResponse, CreditsResponse
from inspira.schemas.post import PostResponse
from inspira.schemas.user import MeResponse, ProfileResponse, ProfileUpdate, PublicProfileResponse
from inspira.services import comments as comment_service
from inspira.services import posts as post_service
from inspira.services import profiles

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me", response_model=MeResponse)
def get_me(db: SessionDep, ctx: AuthDep) -> MeResponse:
    return profiles.get_me(db, ctx)


@router.put("/profile", response_model=ProfileResponse)
def update_profile(body: ProfileUpdate, db: SessionDep, ctx: AuthDep) -> ProfileResponse:
    return profiles.update_profile(db, ctx, body)


@router.get("/user/{profile_id}", response_model=PublicProfileResponse)
def get_user(profile_id: int, db: SessionDep) -> PublicProfileResponse:
    """Public profile of any user."""
    return profiles.get_public_profile(db, profile_id)


@router.get("/me/posts", response_model=list[PostResponse])
def my_posts(db: SessionDep, ctx: AuthDep) -> list[PostResponse]:
    return post_service.list_author_posts(db, ctx.profile_id)


@router.get("/me/comments", response_model=list[CommentResponse])
def my_comments(db: SessionDep, ctx: AuthDep) -> list[CommentResponse]:
    return comment_service.list_author_comments(db, ctx.profile_id)


@router.get("/me/credits", response_model=CreditHistoryResponse)
def credit_history(db: SessionDep, ctx: AuthDep) -> CreditHistoryResponse:
    return profiles.credit_history(db, ctx)


@router.get("/credits", response_model=CreditsResponse)
def credits(db: SessionDep, ctx: AuthDep) -> CreditsResponse:
    return CreditsResponse(credits=profiles.get_profile_or_404(db, ctx.profile_id).credits)


@router.delete("/account", status_code=status.HTTP_204_NO_CONTENT)
def delete_account(db: SessionDep, ctx: AuthDep) -> None:
    profiles.delete_account(db, ctx)
