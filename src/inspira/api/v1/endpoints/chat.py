# src/inspira/api/v1/endpoints/chat.py
"""Chat endpoints and the realtime WebSocket."""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Response, WebSocket, WebSocketDisconnect, status
from sqlalchemy.orm import Session, sessionmaker
from starlette.concurrency import run_in_threadpool

from inspira.api.v1.dependencies import AuthDep, NotifierDep, SessionDep
from inspira.core.errors import ApiError
from inspira.core.security import verify_identity_token
from inspira.db.session import get_session_factory
from inspira.schemas.chat import (
    ChatUserListResponse,
    ConversationCreate,
    ConversationResponse,
    MessageCreate,
    MessageListResponse,
    MessageResponse,
)
from inspira.services import chat as chat_service
from inspira.services.identity import AuthContext, resolve_identity
from inspira.services.notifications import ConnectionRegistry

router = APIRouter(prefix="/chat", tags=["chat"])
logger = logging.getLogger(__name__)

SessionFactoryDep = Annotated[sessionmaker[Session], Depends(get_session_factory)]


@router.get("/conversations", response_model=list[ConversationResponse])
def list_conversations(db: SessionDep, ctx: AuthDep) -> list[ConversationResponse]:
    return chat_service.list_conversations(db, ctx)


@router.post("/conversations", response_model=ConversationResponse)
def create_conversation(
    body: ConversationCreate,
    response: Response,
    db: SessionDep,
    ctx: AuthDep,
) -> ConversationResponse:
    """Open (or return the existing) conversation with another profile."""
    conversation, created = chat_service.get_or_create_conversation(db, ctx, body.participant_id)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return conversation


@router.get("/conversations/{conversation_id}/messages", response_model=MessageListResponse)
def list_messages(
    conversation_id: int,
    db: SessionDep,
    ctx: AuthDep,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
) -> MessageListResponse:
    messages, pagination = chat_service.list_messages(
        db, ctx, conversation_id, page=page, limit=limit
    )
    return MessageListResponse(messages=messages, pagination=pagination)


@router.post(
    "/conversations/{conversation_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
def send_message(
    conversation_id: int,
    body: MessageCreate,
    db: SessionDep,
    ctx: AuthDep,
    notifier: NotifierDep,
) -> MessageResponse:
    return chat_service.send_message(
        db,
        ctx,
        notifier,
        conversation_id,
        content=body.content,
        message_type=body.message_type,
        file_url=body.file_url,
    )


@router.patch("/messages/{message_id}/read", response_model=MessageResponse)
def mark_read(
    message_id: int,
    db: SessionDep,
    ctx: AuthDep,
    notifier: NotifierDep,
) -> MessageResponse:
    return chat_service.mark_read(db, ctx, message_id, notifier)


@router.get("/users", response_model=ChatUserListResponse)
def search_users(
    db: SessionDep,
    ctx: AuthDep,
    q: str = "",
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=50)] = 20,
) -> ChatUserListResponse:
    users, pagination = chat_service.search_users(db, ctx, q, page=page, limit=limit)
    return ChatUserListResponse(users=users, pagination=pagination)


def _authenticate_socket(factory: sessionmaker[Session], token: str | None) -> AuthContext | None:
    if not token:
        return None
    identity = verify_identity_token(token)
    if identity is None:
        return None
    db = factory()
    try:
        return resolve_identity(db, identity)
    finally:
        db.close()


def _conversations_snapshot(
    factory: sessionmaker[Session], ctx: AuthContext
) -> list[dict[str, Any]]:
    db = factory()
    try:
        return [
            c.model_dump(mode="json", by_alias=True)
            for c in chat_service.list_conversations(db, ctx)
        ]
    finally:
        db.close()


def _typing_recipient(
    factory: sessionmaker[Session], ctx: AuthContext, conversation_id: int
) -> int | None:
    db = factory()
    try:
        return chat_service.typing_recipient(db, ctx, conversation_id)
    finally:
        db.close()


def _mark_read(
    factory: sessionmaker[Session], ctx: AuthContext, message_id: int
) -> MessageResponse:
    db = factory()
    try:
        return chat_service.mark_read(db, ctx, message_id)
    finally:
        db.close()


async def _handle_frame(
    factory: sessionmaker[Session],
    registry: ConnectionRegistry,
    ctx: AuthContext,
    frame: dict[str, Any],
) -> dict[str, Any] | None:
    """Handle one client frame; return the reply for the sender, if any."""
    frame_type = frame.get("type")
    data = frame.get("data") or {}

    if frame_type == "ping":
        return {"type": "pong"}

    if not isinstance(data, dict):
        return {"type": "error", "data": {"message": "Invalid message format"}}

    if frame_type == "typing":
        conversation_id = data.get("conversationId")
        if not isinstance(conversation_id, int):
            return {"type": "error", "data": {"message": "conversationId is required"}}
        recipient = await run_in_threadpool(_typing_recipient, factory, ctx, conversation_id)
        if recipient is not None:
            await registry.send(
                recipient,
                {
                    "type": "typing",
                    "data": {
                        "profileId": ctx.profile_id,
                        "conversationId": conversation_id,
                        "isTyping": bool(data.get("isTyping", True)),
                    },
                },
            )
        return None

    if frame_type == "read":
        message_id = data.get("messageId")
        if not isinstance(message_id, int):
            return {"type": "error", "data": {"message": "messageId is required"}}
        try:
            message = await run_in_threadpool(_mark_read, factory, ctx, message_id)
        except ApiError as exc:
            return {"type": "error", "data": {"code": exc.code.value, "message": exc.message}}
        await registry.send(
            message.sender_id,
            {
                "type": "message_read",
                "data": {"messageId": message.id, "conversationId": message.conversation_id},
            },
        )
        return None

    return {"type": "error", "data": {"message": f"Unknown message type: {frame_type}"}}


@router.websocket("/ws")
async def chat_socket(
    websocket: WebSocket,
    factory: SessionFactoryDep,
    token: str | None = None,
) -> None:
    """Realtime channel: server pushes ``new_message``/``message_read``/``typing`` frames."""
    ctx = await run_in_threadpool(_authenticate_socket, factory, token)
    if ctx is None:
        await websocket.close(
            code=status.WS_1008_POLICY_VIOLATION, reason="Authentication required"
        )
        return

    registry: ConnectionRegistry = websocket.app.state.connections
    await websocket.accept()
    await registry.connect(ctx.profile_id, websocket)
    try:
        snapshot = await run_in_threadpool(_conversations_snapshot, factory, ctx)
        await websocket.send_json({"type": "conversations", "data": snapshot})
        while True:
            try:
                frame = await websocket.receive_json()
            except ValueError:
                frame = None
            if not isinstance(frame, dict):
                await websocket.send_json(
                    {"type": "error", "data": {"message": "Invalid message format"}}
                )
                continue
            reply = await _handle_frame(factory, registry, ctx, frame)
            if reply is not None:
                await websocket.send_json(reply)
    except WebSocketDisconnect:
        logger.debug("Chat socket closed by profile %s", ctx.profile_id)
    finally:
        await registry.disconnect(ctx.profile_id, websocket)
