# src/inspira/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .chat import ConversationCreate, ConversationResponse, MessageCreate, MessageResponse
from .comment import CommentCreate, CommentDetailResponse, CommentResponse
from .common import AuthorSummary, Pagination
from .payment import (
    CreateOrderRequest,
    CreditHistoryResponse,
    OrderResponse,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from .post import HelpfulMarkResponse, PostListResponse, PostResponse, UpvoteResponse
from .user import MeResponse, ProfileResponse, ProfileUpdate, PublicProfileResponse

__all__ = [
    "ConversationCreate", "ConversationResponse", "MessageCreate", "MessageResponse",
    "CommentCreate", "CommentDetailResponse", "CommentResponse",
    "AuthorSummary", "Pagination",
    "CreateOrderRequest", "CreditHistoryResponse", "OrderResponse",
    "VerifyPaymentRequest", "VerifyPaymentResponse",
    "HelpfulMarkResponse", "PostListResponse", "PostResponse", "UpvoteResponse",
    "MeResponse", "ProfileResponse", "ProfileUpdate", "PublicProfileResponse",
]
