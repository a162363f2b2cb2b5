"""Direct chat between two profiles.

Messages are persisted first; the realtime notification to the other
participant happens afterwards through the injected ``Notifier`` and can
never undo or fail the write.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from inspira.core.errors import ApiErrorCode, InvalidRequestError, NotFoundError
from inspira.db.session import transaction
from inspira.db.time import utcnow
from inspira.models import ChatConversation, ChatMessage, MessageKind, Profile
from inspira.schemas.chat import ConversationResponse, LastMessage, MessageResponse
from inspira.schemas.common import AuthorSummary, Pagination
from inspira.services.identity import AuthContext
from inspira.services.notifications import Notifier, notify_quietly
from inspira.services.validation import is_blank, require_text

logger = logging.getLogger(__name__)


def _ordered_pair(first: int, second: int) -> tuple[int, int]:
    return (first, second) if first < second else (second, first)


def to_message_response(message: ChatMessage) -> MessageResponse:
    return MessageResponse(
        id=message.id,
        conversation_id=message.conversation_id,
        sender_id=message.sender_id,
        sender=AuthorSummary.model_validate(message.sender),
        content=message.content,
        message_type=message.kind.value,
        file_url=message.file_url,
        is_read=message.is_read,
        read_at=message.read_at,
        created_at=message.created_at,
    )


def to_conversation_response(
    db: Session, conversation: ChatConversation, profile_id: int
) -> ConversationResponse:
    other = (
        conversation.participant2
        if conversation.participant1_id == profile_id
        else conversation.participant1
    )
    message_count = (
        db.query(func.count(ChatMessage.id))
        .filter(ChatMessage.conversation_id == conversation.id)
        .scalar()
    )
    unread_count = (
        db.query(func.count(ChatMessage.id))
        .filter(
            ChatMessage.conversation_id == conversation.id,
            ChatMessage.sender_id != profile_id,
            ChatMessage.is_read.is_(False),
        )
        .scalar()
    )
    last = conversation.last_message
    return ConversationResponse(
        id=conversation.id,
        other_participant=AuthorSummary.model_validate(other),
        last_message=(
            LastMessage(
                id=last.id,
                content=last.content,
                sender_id=last.sender_id,
                created_at=last.created_at,
            )
            if last is not None
            else None
        ),
        message_count=int(message_count or 0),
        unread_count=int(unread_count or 0),
        updated_at=conversation.updated_at,
        created_at=conversation.created_at,
    )


def get_conversation_for(db: Session, ctx: AuthContext, conversation_id: int) -> ChatConversation:
    """Return the conversation if the caller takes part in it; 404 otherwise."""
    conversation = db.get(ChatConversation, conversation_id)
    if conversation is None or not conversation.has_participant(ctx.profile_id):
        raise NotFoundError(
            ApiErrorCode.E_CONVERSATION_NOT_FOUND,
            "Conversation not found or access denied",
        )
    return conversation


def list_conversations(db: Session, ctx: AuthContext) -> list[ConversationResponse]:
    """The caller's inbox, most recently active first."""
    conversations = (
        db.query(ChatConversation)
        .filter(
            or_(
                ChatConversation.participant1_id == ctx.profile_id,
                ChatConversation.participant2_id == ctx.profile_id,
            )
        )
        .order_by(ChatConversation.updated_at.desc(), ChatConversation.id.desc())
        .all()
    )
    return [to_conversation_response(db, c, ctx.profile_id) for c in conversations]


def _find_conversation(db: Session, low: int, high: int) -> ChatConversation | None:
    return (
        db.query(ChatConversation)
        .filter(ChatConversation.participant1_id == low, ChatConversation.participant2_id == high)
        .one_or_none()
    )


def get_or_create_conversation(
    db: Session, ctx: AuthContext, participant_id: int | None
) -> tuple[ConversationResponse, bool]:
    """Return the conversation between the caller and ``participant_id``.

    At most one conversation exists per unordered pair. The second element
    of the result is True when the conversation was created by this call.
    """
    if participant_id is None:
        raise InvalidRequestError(ApiErrorCode.E_MISSING_FIELD, "participantId is required")
    if participant_id == ctx.profile_id:
        raise InvalidRequestError(
            ApiErrorCode.E_SELF_CONVERSATION,
            "Cannot create a conversation with yourself",
        )
    if db.get(Profile, participant_id) is None:
        raise NotFoundError(ApiErrorCode.E_PROFILE_NOT_FOUND, "Participant not found")

    low, high = _ordered_pair(ctx.profile_id, participant_id)
    conversation = _find_conversation(db, low, high)
    created = False
    if conversation is None:
        try:
            with transaction(db):
                conversation = ChatConversation(participant1_id=low, participant2_id=high)
                db.add(conversation)
                db.flush()
            created = True
        except IntegrityError:
            conversation = _find_conversation(db, low, high)
            if conversation is None:
                raise
    return to_conversation_response(db, conversation, ctx.profile_id), created


def list_messages(
    db: Session,
    ctx: AuthContext,
    conversation_id: int,
    *,
    page: int = 1,
    limit: int = 50,
) -> tuple[list[MessageResponse], Pagination]:
    """One page of messages, oldest first; the other side's unread ones become read."""
    conversation = get_conversation_for(db, ctx, conversation_id)
    messages = (
        db.query(ChatMessage)
        .filter(ChatMessage.conversation_id == conversation.id)
        .order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    total = (
        db.query(func.count(ChatMessage.id))
        .filter(ChatMessage.conversation_id == conversation.id)
        .scalar()
    ) or 0

    unread = [m for m in messages if m.sender_id != ctx.profile_id and not m.is_read]
    if unread:
        now = utcnow()
        with transaction(db):
            for message in unread:
                message.is_read = True
                message.read_at = now

    messages.reverse()
    return [to_message_response(m) for m in messages], Pagination.build(page, limit, int(total))


def send_message(
    db: Session,
    ctx: AuthContext,
    notifier: Notifier,
    conversation_id: int,
    *,
    content: str | None,
    message_type: str = MessageKind.TEXT.value,
    file_url: str | None = None,
) -> MessageResponse:
    """Persist a message, bump the conversation, then notify the other participant."""
    content = require_text(content, "content")
    kind = MessageKind(message_type)
    if kind is MessageKind.FILE and is_blank(file_url):
        raise InvalidRequestError(ApiErrorCode.E_MISSING_FIELD, "fileUrl is required")
    conversation = get_conversation_for(db, ctx, conversation_id)

    with transaction(db):
        message = ChatMessage(
            conversation_id=conversation.id,
            sender_id=ctx.profile_id,
            content=content,
            kind=kind,
            file_url=file_url if kind is MessageKind.FILE else None,
            is_read=False,
        )
        db.add(message)
        db.flush()
        conversation.last_message_id = message.id
        conversation.updated_at = utcnow()

    response = to_message_response(message)
    notify_quietly(
        notifier,
        conversation.other_participant_id(ctx.profile_id),
        {"type": "new_message", "data": response.model_dump(mode="json", by_alias=True)},
    )
    return response


def mark_read(
    db: Session,
    ctx: AuthContext,
    message_id: int,
    notifier: Notifier | None = None,
) -> MessageResponse:
    """Mark a received message read. Only the receiving participant may do this."""
    message = db.get(ChatMessage, message_id)
    if message is None or not message.conversation.has_participant(ctx.profile_id):
        raise NotFoundError(ApiErrorCode.E_MESSAGE_NOT_FOUND, "Message not found")
    if message.sender_id == ctx.profile_id:
        raise InvalidRequestError(
            ApiErrorCode.E_OWN_MESSAGE,
            "Cannot mark your own message as read",
        )
    if not message.is_read:
        with transaction(db):
            message.is_read = True
            message.read_at = utcnow()
        if notifier is not None:
            notify_quietly(
                notifier,
                message.sender_id,
                {
                    "type": "message_read",
                    "data": {"messageId": message.id, "conversationId": message.conversation_id},
                },
            )
    return to_message_response(message)


def search_users(
    db: Session,
    ctx: AuthContext,
    q: str = "",
    *,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[AuthorSummary], Pagination]:
    """Profiles whose name contains ``q`` (case-insensitive), excluding the caller."""
    query = db.query(Profile).filter(Profile.id != ctx.profile_id)
    if q.strip():
        query = query.filter(Profile.name.ilike(f"%{q.strip()}%"))
    total = query.count()
    profiles = (
        query.order_by(Profile.name.asc(), Profile.id.asc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return [AuthorSummary.model_validate(p) for p in profiles], Pagination.build(page, limit, total)


def typing_recipient(db: Session, ctx: AuthContext, conversation_id: int) -> int | None:
    """Other participant of ``conversation_id``, or None if the caller is not in it."""
    conversation = db.get(ChatConversation, conversation_id)
    if conversation is None or not conversation.has_participant(ctx.profile_id):
        return None
    return conversation.other_participant_id(ctx.profile_id)
