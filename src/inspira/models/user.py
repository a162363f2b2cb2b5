"""SQLAlchemy models for identities and their credit-bearing profiles."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inspira.db.session import Base
from inspira.db.time import CreatedAtMixin, utcnow


class User(CreatedAtMixin, Base):
    """Local anchor for an identity verified by the external auth provider."""

    __tablename__ = "user_account"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    external_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    profile: Mapped[Profile] = relationship(
        "Profile",
        back_populates="user",
        cascade="all, delete-orphan",
        uselist=False,
    )


class Profile(CreatedAtMixin, Base):
    """Public identity of a user and the owner of a credit balance.

    ``credits`` is only ever written by the ledger engine, which appends a
    matching credit transaction for every change.
    """

    __tablename__ = "profile"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    expertise_tags: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    interest_tags: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)

    credits: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    user: Mapped[User] = relationship("User", back_populates="profile")
