"""Shared Pydantic schemas for common API elements."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema serialized with camelCase keys; snake_case input is accepted too."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Pagination(CamelModel):
    """Page metadata returned by list endpoints."""

    page: int
    limit: int
    total: int
    pages: int = Field(..., description="Total number of pages for ``limit``.")

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> Pagination:
        return cls(page=page, limit=limit, total=total, pages=(total + limit - 1) // limit)


class AuthorSummary(CamelModel):
    """Public fields of a profile shown next to content."""

    id: int
    name: str | None = None
    image_url: str | None = None
