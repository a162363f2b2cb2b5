# src/inspira/api/v1/endpoints/comments.py
"""Comment endpoints: detail, replies and upvotes."""

from fastapi import APIRouter, status

from inspira.api.v1.dependencies import AuthDep, SessionDep
from inspira.schemas.comment import CommentCreate, CommentDetailResponse, CommentResponse
from inspira.schemas.post import UpvoteResponse
from inspira.services import comments as comment_service

router = APIRouter(prefix="/comments", tags=["comments"])


@router.get("/{comment_id}", response_model=CommentDetailResponse)
def get_comment(comment_id: int, db: SessionDep) -> CommentDetailResponse:
    return comment_service.get_comment(db, comment_id)


@router.post(
    "/{comment_id}/replies",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_reply(
    comment_id: int,
    body: CommentCreate,
    db: SessionDep,
    ctx: AuthDep,
) -> CommentResponse:
    return comment_service.add_reply(db, ctx, comment_id, body.content)


@router.post("/{comment_id}/upvote", response_model=UpvoteResponse)
def upvote_comment(comment_id: int, db: SessionDep, ctx: AuthDep) -> UpvoteResponse:
    """Toggle an upvote. Voting rewards the comment author; un-voting takes it back."""
    return comment_service.upvote_comment(db, ctx, comment_id)
