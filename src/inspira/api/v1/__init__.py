# src/inspira/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    auth_router,
    chat_router,
    comments_router,
    payments_router,
    posts_router,
)

__all__ = [
    "auth_router",
    "chat_router",
    "comments_router",
    "payments_router",
    "posts_router",
]
