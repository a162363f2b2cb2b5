"""Append-only credit ledger."""

import enum

from sqlalchemy import Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from inspira.db.session import Base
from inspira.db.time import CreatedAtMixin


class TransactionKind(str, enum.Enum):
    """Reason a balance changed."""

    PURCHASE = "PURCHASE"
    POST_COST = "POST_COST"
    HELPFUL_REWARD = "HELPFUL_REWARD"
    UPVOTE_REWARD = "UPVOTE_REWARD"
    UPVOTE_REVERSAL = "UPVOTE_REVERSAL"
    SIGNUP_BONUS = "SIGNUP_BONUS"


class CreditTransaction(CreatedAtMixin, Base):
    """One balance change of one profile.

    Rows are never updated or deleted by the application. ``balance_after``
    is the profile balance immediately after this row was applied, and the
    sum of ``delta`` over a profile's rows always equals its balance.
    """

    __tablename__ = "credit_transaction"
    __table_args__ = (Index("ix_credit_transaction_profile_id_id", "profile_id", "id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    profile_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("profile.id", ondelete="CASCADE"),
        nullable=False,
    )
    kind: Mapped[TransactionKind] = mapped_column(
        Enum(TransactionKind, name="transaction_kind", native_enum=False, length=32),
        nullable=False,
    )
    delta: Mapped[int] = mapped_column(Integer, nullable=False)
    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)

    # Plain references: deleting a post or comment must not rewrite history.
    post_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    comment_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    provider_payment_id: Mapped[str | None] = mapped_column(
        String(128),
        unique=True,
        nullable=True,
    )
