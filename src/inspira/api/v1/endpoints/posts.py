# src/inspira/api/v1/endpoints/posts.py
"""Post endpoints: feed, creation, deletion, resolution and upvotes."""

from typing import Annotated

from fastapi import APIRouter, File, Form, Query, UploadFile, status

from inspira.api.v1.dependencies import AuthDep, SessionDep, StorageDep
from inspira.schemas.comment import CommentCreate, CommentDetailResponse, CommentResponse
from inspira.schemas.post import (
    CategoryCount,
    HelpfulMarkResponse,
    HomeStats,
    PostListResponse,
    PostResponse,
    PostSort,
    ResolveRequest,
    UpvoteResponse,
)
from inspira.services import comments as comment_service
from inspira.services import posts as post_service
from inspira.services import rewards
from inspira.services.posts import Upload

router = APIRouter(prefix="/posts", tags=["posts"])


def _read_uploads(files: list[UploadFile] | None) -> list[Upload]:
    uploads: list[Upload] = []
    for file in files or []:
        uploads.append(
            Upload(
                filename=file.filename,
                content_type=file.content_type or "application/octet-stream",
                data=file.file.read(),
            )
        )
    return uploads


@router.get("", response_model=PostListResponse)
def list_posts(
    db: SessionDep,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=50)] = 10,
    sort: PostSort = "newest",
    category: str | None = None,
) -> PostListResponse:
    """List posts, newest first or by upvotes (``sort=trending``)."""
    posts, pagination = post_service.list_posts(
        db, page=page, limit=limit, sort=sort, category=category
    )
    return PostListResponse(posts=posts, pagination=pagination)


@router.get("/home", response_model=HomeStats)
def home(db: SessionDep) -> HomeStats:
    return post_service.home_stats(db)


@router.get("/categories", response_model=list[CategoryCount])
def categories(db: SessionDep) -> list[CategoryCount]:
    return post_service.category_counts(db)


@router.get("/{post_id}", response_model=PostResponse)
def get_post(post_id: int, db: SessionDep) -> PostResponse:
    return post_service.get_post(db, post_id)


@router.get("/{post_id}/comments", response_model=list[CommentDetailResponse])
def list_comments(post_id: int, db: SessionDep) -> list[CommentDetailResponse]:
    return comment_service.list_post_comments(db, post_id)


@router.post("", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
def create_post(
    db: SessionDep,
    ctx: AuthDep,
    storage: StorageDep,
    title: Annotated[str | None, Form()] = None,
    content: Annotated[str | None, Form()] = None,
    category_ids: Annotated[list[str] | None, Form(alias="categoryIds")] = None,
    images: Annotated[list[UploadFile] | None, File()] = None,
    videos: Annotated[list[UploadFile] | None, File()] = None,
) -> PostResponse:
    """Create a post. Costs ``rewards.POST_COST`` credits."""
    return post_service.create_post(
        db,
        ctx,
        storage,
        title=title,
        content=content,
        category_slugs=category_ids or [],
        images=_read_uploads(images),
        videos=_read_uploads(videos),
    )


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_post(post_id: int, db: SessionDep, ctx: AuthDep) -> None:
    post_service.delete_post(db, ctx, post_id)


@router.patch("/{post_id}/resolve", response_model=HelpfulMarkResponse)
def resolve_post(
    post_id: int,
    body: ResolveRequest,
    db: SessionDep,
    ctx: AuthDep,
) -> HelpfulMarkResponse:
    """Mark a comment as the helpful answer and pay its author."""
    mark = rewards.mark_helpful(db, ctx, post_id, body.comment_id)
    return HelpfulMarkResponse.model_validate(mark)


@router.post("/{post_id}/upvote", response_model=UpvoteResponse)
def upvote_post(post_id: int, db: SessionDep, ctx: AuthDep) -> UpvoteResponse:
    return post_service.upvote_post(db, ctx, post_id)


@router.post(
    "/{post_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_comment(
    post_id: int,
    body: CommentCreate,
    db: SessionDep,
    ctx: AuthDep,
) -> CommentResponse:
    return comment_service.add_comment(db, ctx, post_id, body.content)
