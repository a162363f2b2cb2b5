"""Models for one-to-one conversations and their messages."""

from __future__ import annotations

import enum
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inspira.db.session import Base
from inspira.db.time import CreatedAtMixin, utcnow

if TYPE_CHECKING:
    from .user import Profile


class MessageKind(str, enum.Enum):
    TEXT = "TEXT"
    FILE = "FILE"


class ChatConversation(CreatedAtMixin, Base):
    """Conversation between two distinct profiles.

    Participants are stored ordered (lower id first) so the unique constraint
    covers the unordered pair.
    """

    __tablename__ = "chat_conversation"
    __table_args__ = (
        UniqueConstraint("participant1_id", "participant2_id", name="uq_chat_conversation_pair"),
        CheckConstraint("participant1_id < participant2_id", name="ck_chat_conversation_order"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    participant1_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("profile.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    participant2_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("profile.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    last_message_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey(
            "chat_message.id",
            ondelete="SET NULL",
            use_alter=True,
            name="fk_chat_conversation_last_message_id",
        ),
        nullable=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    participant1: Mapped[Profile] = relationship("Profile", foreign_keys=[participant1_id])
    participant2: Mapped[Profile] = relationship("Profile", foreign_keys=[participant2_id])
    messages: Mapped[list[ChatMessage]] = relationship(
        "ChatMessage",
        back_populates="conversation",
        foreign_keys="ChatMessage.conversation_id",
        order_by="ChatMessage.id",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    last_message: Mapped[ChatMessage | None] = relationship(
        "ChatMessage",
        foreign_keys=[last_message_id],
        post_update=True,
    )

    def other_participant_id(self, profile_id: int) -> int:
        if profile_id == self.participant1_id:
            return self.participant2_id
        return self.participant1_id

    def has_participant(self, profile_id: int) -> bool:
        return profile_id in (self.participant1_id, self.participant2_id)


class ChatMessage(CreatedAtMixin, Base):
    """A message inside a conversation."""

    __tablename__ = "chat_message"
    __table_args__ = (Index("ix_chat_message_conversation_id_id", "conversation_id", "id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    conversation_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("chat_conversation.id", ondelete="CASCADE"),
        nullable=False,
    )
    sender_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("profile.id", ondelete="CASCADE"),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    kind: Mapped[MessageKind] = mapped_column(
        Enum(MessageKind, name="message_kind", native_enum=False, length=16),
        default=MessageKind.TEXT,
        nullable=False,
    )
    file_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    sender: Mapped[Profile] = relationship("Profile")
    conversation: Mapped[ChatConversation] = relationship(
        "ChatConversation",
        back_populates="messages",
        foreign_keys=[conversation_id],
    )
