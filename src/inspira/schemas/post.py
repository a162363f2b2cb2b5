"""Post-related Pydantic schemas."""
from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import Field

from .common import AuthorSummary, CamelModel, Pagination

PostSort = Literal["newest", "trending"]


class CategoryResponse(CamelModel):
    id: int
    slug: str
    name: str


class PostResponse(CamelModel):
    """Schema for post information returned by the API."""

    id: int
    title: str
    content: str
    author_id: int
    author: AuthorSummary
    categories: list[CategoryResponse] = Field(default_factory=list)
    image_urls: list[str] = Field(default_factory=list)
    video_urls: list[str] = Field(default_factory=list)
    comment_count: int = 0
    upvote_count: int = 0
    is_resolved: bool = False
    helpful_comment_id: int | None = None
    created_at: datetime


class PostListResponse(CamelModel):
    posts: list[PostResponse]
    pagination: Pagination


class HomeStats(CamelModel):
    total_posts: int
    total_users: int
    total_comments: int


class CategoryCount(CamelModel):
    slug: str
    name: str
    post_count: int


class ResolveRequest(CamelModel):
    """Body of ``PATCH /posts/{id}/resolve``."""

    comment_id: int | None = Field(None, description="Comment accepted as the answer")


class HelpfulMarkResponse(CamelModel):
    id: int
    post_id: int
    comment_id: int | None
    marked_by_id: int
    created_at: datetime


class UpvoteResponse(CamelModel):
    """Upvote toggle result: the new count and whether the vote was removed."""

    upvotes: int
    removed: bool
