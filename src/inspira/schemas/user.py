"""User and profile Pydantic schemas."""
from __future__ import annotations

from datetime import datetime

from pydantic import Field

from .common import CamelModel


class ProfileResponse(CamelModel):
    id: int
    user_id: int
    name: str | None = None
    image_url: str | None = None
    bio: str | None = None
    expertise_tags: list[str] = Field(default_factory=list)
    interest_tags: list[str] = Field(default_factory=list)
    credits: int
    created_at: datetime


class PublicProfileResponse(CamelModel):
    """Profile as shown to other users; the balance stays private."""

    id: int
    name: str | None = None
    image_url: str | None = None
    bio: str | None = None
    expertise_tags: list[str] = Field(default_factory=list)
    interest_tags: list[str] = Field(default_factory=list)
    post_count: int = 0
    comment_count: int = 0
    created_at: datetime


class MeResponse(CamelModel):
    id: int
    external_id: str
    email: str | None = None
    profile: ProfileResponse


class ProfileUpdate(CamelModel):
    """Only fields present in the request body are changed."""

    name: str | None = Field(None, max_length=200)
    bio: str | None = None
    expertise_tags: list[str] | None = None
    interest_tags: list[str] | None = None
