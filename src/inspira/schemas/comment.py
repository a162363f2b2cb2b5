"""Comment-related Pydantic schemas."""
from __future__ import annotations

from datetime import datetime

from pydantic import Field

from .common import AuthorSummary, CamelModel


class CommentCreate(CamelModel):
    """Schema for creating a comment or a reply."""

    content: str | None = Field(None, description="Comment body")


class CommentResponse(CamelModel):
    id: int
    content: str
    author_id: int
    author: AuthorSummary
    post_id: int
    parent_id: int | None = None
    upvote_count: int = 0
    reply_count: int = 0
    created_at: datetime


class CommentDetailResponse(CommentResponse):
    """A comment with its direct replies."""

    replies: list[CommentResponse] = Field(default_factory=list)
