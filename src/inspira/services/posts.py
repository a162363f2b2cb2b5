"""Post service: listing, creation (with the post fee), deletion and upvotes."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from inspira.core.errors import ApiErrorCode, ForbiddenError, NotFoundError
from inspira.db.session import transaction
from inspira.models import Category, Comment, Post, PostUpvote, Profile, User, post_category
from inspira.schemas.common import AuthorSummary, Pagination
from inspira.schemas.post import (
    CategoryCount,
    CategoryResponse,
    HomeStats,
    PostResponse,
    PostSort,
    UpvoteResponse,
)
from inspira.services import rewards
from inspira.services.identity import AuthContext
from inspira.services.storage import ObjectStorage, object_key
from inspira.services.toggle import toggle
from inspira.services.validation import is_blank, require_text

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES: tuple[tuple[str, str], ...] = (
    ("coding", "Coding"),
    ("design", "Design"),
    ("business", "Business"),
    ("writing", "Writing"),
    ("marketing", "Marketing"),
)


@dataclass(frozen=True)
class Upload:
    """An attachment received with a new post."""

    filename: str | None
    content_type: str
    data: bytes


def to_post_response(post: Post, comment_count: int, upvote_count: int) -> PostResponse:
    """Convert a Post ORM instance to an API schema."""
    return PostResponse(
        id=post.id,
        title=post.title,
        content=post.content,
        author_id=post.author_id,
        author=AuthorSummary.model_validate(post.author),
        categories=[CategoryResponse.model_validate(c) for c in post.categories],
        image_urls=list(post.image_urls or []),
        video_urls=list(post.video_urls or []),
        comment_count=comment_count,
        upvote_count=upvote_count,
        is_resolved=post.helpful_mark is not None,
        helpful_comment_id=post.helpful_mark.comment_id if post.helpful_mark else None,
        created_at=post.created_at,
    )


def _comment_counts():
    return (
        select(Comment.post_id, func.count(Comment.id).label("n"))
        .group_by(Comment.post_id)
        .subquery()
    )


def _upvote_counts():
    return (
        select(PostUpvote.post_id, func.count(PostUpvote.voter_id).label("n"))
        .group_by(PostUpvote.post_id)
        .subquery()
    )


def list_posts(
    db: Session,
    *,
    page: int = 1,
    limit: int = 10,
    sort: PostSort = "newest",
    category: str | None = None,
) -> tuple[list[PostResponse], Pagination]:
    """Return one page of posts with counts, newest or most upvoted first."""
    comments = _comment_counts()
    upvotes = _upvote_counts()
    comment_count = func.coalesce(comments.c.n, 0)
    upvote_count = func.coalesce(upvotes.c.n, 0)

    filters = []
    if category:
        filters.append(Post.categories.any(Category.slug == category.strip().lower()))

    query = (
        db.query(Post, comment_count, upvote_count)
        .outerjoin(comments, comments.c.post_id == Post.id)
        .outerjoin(upvotes, upvotes.c.post_id == Post.id)
        .options(
            selectinload(Post.author),
            selectinload(Post.categories),
            selectinload(Post.helpful_mark),
        )
        .filter(*filters)
    )
    if sort == "trending":
        query = query.order_by(upvote_count.desc(), Post.created_at.desc(), Post.id.desc())
    else:
        query = query.order_by(Post.created_at.desc(), Post.id.desc())

    rows = query.offset((page - 1) * limit).limit(limit).all()
    total = db.query(func.count(Post.id)).filter(*filters).scalar() or 0

    posts = [
        to_post_response(post, int(n_comments), int(n_upvotes))
        for post, n_comments, n_upvotes in rows
    ]
    return posts, Pagination.build(page, limit, int(total))


def get_post_or_404(db: Session, post_id: int) -> Post:
    post = db.get(Post, post_id)
    if post is None:
        raise NotFoundError(ApiErrorCode.E_POST_NOT_FOUND, "Post not found")
    return post


def post_counts(db: Session, post_id: int) -> tuple[int, int]:
    n_comments = db.query(func.count(Comment.id)).filter(Comment.post_id == post_id).scalar() or 0
    n_upvotes = (
        db.query(func.count(PostUpvote.voter_id))
        .filter(PostUpvote.post_id == post_id)
        .scalar()
    ) or 0
    return int(n_comments), int(n_upvotes)


def get_post(db: Session, post_id: int) -> PostResponse:
    post = get_post_or_404(db, post_id)
    return to_post_response(post, *post_counts(db, post.id))


def list_author_posts(db: Session, profile_id: int) -> list[PostResponse]:
    posts = (
        db.query(Post)
        .filter(Post.author_id == profile_id)
        .order_by(Post.created_at.desc(), Post.id.desc())
        .all()
    )
    return [to_post_response(post, *post_counts(db, post.id)) for post in posts]


def home_stats(db: Session) -> HomeStats:
    return HomeStats(
        total_posts=db.query(func.count(Post.id)).scalar() or 0,
        total_users=db.query(func.count(User.id)).scalar() or 0,
        total_comments=db.query(func.count(Comment.id)).scalar() or 0,
    )


def category_counts(db: Session) -> list[CategoryCount]:
    """Post counts for the default categories (zero when a category has no row yet)."""
    rows = (
        db.query(Category.slug, func.count(post_category.c.post_id))
        .outerjoin(post_category, post_category.c.category_id == Category.id)
        .filter(Category.slug.in_([slug for slug, _ in DEFAULT_CATEGORIES]))
        .group_by(Category.slug)
        .all()
    )
    counts = {slug: int(n) for slug, n in rows}
    return [
        CategoryCount(slug=slug, name=name, post_count=counts.get(slug, 0))
        for slug, name in DEFAULT_CATEGORIES
    ]


def _get_or_create_category(db: Session, slug: str) -> Category:
    category = db.query(Category).filter(Category.slug == slug).one_or_none()
    if category is not None:
        return category
    try:
        with db.begin_nested():
            category = Category(slug=slug, name=slug[:1].upper() + slug[1:])
            db.add(category)
    except IntegrityError:
        # Another request created the same slug.
        return db.query(Category).filter(Category.slug == slug).one()
    return category


def _resolve_categories(db: Session, slugs: Sequence[str]) -> list[Category]:
    resolved: dict[str, Category] = {}
    for raw in slugs:
        if is_blank(raw):
            continue
        slug = raw.strip().lower()
        if slug not in resolved:
            resolved[slug] = _get_or_create_category(db, slug)
    return list(resolved.values())


def _store_uploads(storage: ObjectStorage, folder: str, uploads: Sequence[Upload]) -> list[str]:
    urls: list[str] = []
    for upload in uploads:
        key = object_key(folder, upload.filename)
        storage.put(key, upload.data, upload.content_type)
        urls.append(storage.public_url(key))
    return urls


def create_post(
    db: Session,
    ctx: AuthContext,
    storage: ObjectStorage,
    *,
    title: str | None,
    content: str | None,
    category_slugs: Sequence[str] = (),
    images: Sequence[Upload] = (),
    videos: Sequence[Upload] = (),
) -> PostResponse:
    """Create a post and charge its fee.

    Input and balance are checked before any upload, and the balance is
    checked again under the profile lock inside the same transaction that
    inserts the post and debits ``POST_COST``.

    Raises:
        InvalidRequestError: Missing title/content or insufficient credits.
        NotFoundError: The caller's profile no longer exists.
        UpstreamError: An attachment could not be stored.
    """
    title = require_text(title, "title")
    content = require_text(content, "content")

    profile = db.get(Profile, ctx.profile_id)
    if profile is None:
        raise NotFoundError(ApiErrorCode.E_PROFILE_NOT_FOUND, "Profile not found")
    rewards.ensure_can_afford(profile, rewards.POST_COST)

    image_urls = _store_uploads(storage, "images", images)
    video_urls = _store_uploads(storage, "videos", videos)

    with transaction(db):
        post = Post(
            title=title,
            content=content,
            author_id=ctx.profile_id,
            image_urls=image_urls,
            video_urls=video_urls,
        )
        post.categories = _resolve_categories(db, category_slugs)
        db.add(post)
        db.flush()
        rewards.charge_post_creation(db, ctx.profile_id, post)

    logger.info("Profile %s created post %s", ctx.profile_id, post.id)
    return to_post_response(post, 0, 0)


def delete_post(db: Session, ctx: AuthContext, post_id: int) -> None:
    """Delete a post and everything hanging off it. Ledger rows are kept."""
    post = get_post_or_404(db, post_id)
    if post.author_id != ctx.profile_id:
        raise ForbiddenError(message="You can only delete your own posts")
    with transaction(db):
        db.delete(post)
    logger.info("Profile %s deleted post %s", ctx.profile_id, post_id)


def upvote_post(db: Session, ctx: AuthContext, post_id: int) -> UpvoteResponse:
    """Toggle the caller's upvote on a post. Post upvotes move no credits."""
    post = get_post_or_404(db, post_id)
    with transaction(db):
        result = toggle(db, PostUpvote, "post_id", post.id, ctx.profile_id)
    return UpvoteResponse(upvotes=result.count, removed=not result.voted)
