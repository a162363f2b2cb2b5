"""SQLAlchemy models for the Inspira application."""

from .chat import ChatConversation, ChatMessage, MessageKind
from .comment import Comment
from .helpful import HelpfulMark
from .ledger import CreditTransaction, TransactionKind
from .post import Category, Post, post_category
from .user import Profile, User
from .vote import CommentUpvote, PostUpvote

__all__ = [
    "ChatConversation", "ChatMessage", "MessageKind",
    "Comment",
    "HelpfulMark",
    "CreditTransaction", "TransactionKind",
    "Category", "Post", "post_category",
    "Profile", "User",
    "CommentUpvote", "PostUpvote",
]
