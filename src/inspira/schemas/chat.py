"""Chat Pydantic schemas."""
from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import Field

from .common import AuthorSummary, CamelModel, Pagination


class ConversationCreate(CamelModel):
    participant_id: int | None = Field(None, description="Profile to chat with")


class LastMessage(CamelModel):
    id: int
    content: str
    sender_id: int
    created_at: datetime


class ConversationResponse(CamelModel):
    id: int
    other_participant: AuthorSummary
    last_message: LastMessage | None = None
    message_count: int = 0
    unread_count: int = 0
    updated_at: datetime
    created_at: datetime


class MessageCreate(CamelModel):
    content: str | None = None
    message_type: Literal["TEXT", "FILE"] = "TEXT"
    file_url: str | None = None


class MessageResponse(CamelModel):
    id: int
    conversation_id: int
    sender_id: int
    sender: AuthorSummary
    content: str
    message_type: str
    file_url: str | None = None
    is_read: bool
    read_at: datetime | None = None
    created_at: datetime


class MessageListResponse(CamelModel):
    messages: list[MessageResponse]
    pagination: Pagination


class ChatUserListResponse(CamelModel):
    users: list[AuthorSummary]
    pagination: Pagination
