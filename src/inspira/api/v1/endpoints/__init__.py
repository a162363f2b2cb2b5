# src/inspira/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .auth import router as auth_router
from .chat import router as chat_router
from .comments import router as comments_router
from .payments import router as payments_router
from .posts import router as posts_router

__all__ = [
    "auth_router",
    "chat_router",
    "comments_router",
    "payments_router",
    "posts_router",
]
