"""Resolve verified identities to local users and profiles."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from inspira.core.errors import UnauthenticatedError
from inspira.core.security import VerifiedIdentity
from inspira.core.settings import settings
from inspira.db.session import transaction
from inspira.models import Profile, TransactionKind, User
from inspira.services import ledger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthContext:
    """The authenticated caller, passed explicitly into every operation."""

    user_id: int
    profile_id: int
    external_id: str


def _context(user: User) -> AuthContext:
    return AuthContext(user_id=user.id, profile_id=user.profile.id, external_id=user.external_id)


def _find_user(db: Session, external_id: str) -> User | None:
    return db.query(User).filter(User.external_id == external_id).one_or_none()


def _create_user(db: Session, identity: VerifiedIdentity) -> User:
    with transaction(db):
        user = User(external_id=identity.external_id, email=identity.email)
        user.profile = Profile(
            name=identity.name,
            image_url=identity.image_url,
            expertise_tags=[],
            interest_tags=[],
            credits=0,
        )
        db.add(user)
        db.flush()
        if settings.signup_bonus_credits > 0:
            ledger.apply_delta(
                db,
                user.profile.id,
                settings.signup_bonus_credits,
                TransactionKind.SIGNUP_BONUS,
                note="Welcome bonus",
            )
    logger.info("Created user %s with profile %s", user.id, user.profile.id)
    return user


def resolve_identity(db: Session, identity: VerifiedIdentity) -> AuthContext:
    """Return the local context for ``identity``, creating user and profile on first sight.

    Raises:
        UnauthenticatedError: If the user cannot be resolved.
    """
    user = _find_user(db, identity.external_id)
    if user is None:
        try:
            user = _create_user(db, identity)
        except IntegrityError:
            # A concurrent first request created the row; use the winner's.
            user = _find_user(db, identity.external_id)
            if user is None:
                raise UnauthenticatedError() from None

    if user.profile is None:
        with transaction(db):
            user.profile = Profile(name=identity.name, image_url=identity.image_url, credits=0)
            db.flush()

    return _context(user)
