"""Credit ledger: the only code path allowed to change a profile balance.

Every balance change appends a ``CreditTransaction`` in the same unit of work
as the balance write. Functions here flush but never commit; callers wrap
them in ``inspira.db.session.transaction`` so both writes land or neither
does.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import func
from sqlalchemy.orm import Session

from inspira.core.errors import ApiErrorCode, NotFoundError
from inspira.models import CreditTransaction, Profile, TransactionKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerEntry:
    """Result of a single balance change."""

    profile: Profile
    transaction: CreditTransaction

    @property
    def balance(self) -> int:
        return self.transaction.balance_after


def lock_profile(db: Session, profile_id: int) -> Profile:
    """Load ``profile_id`` with a row lock held until the caller's transaction ends.

    ``populate_existing`` refreshes an already-loaded instance so the balance
    read is the locked one, not a stale identity-map copy.
    """
    profile = (
        db.query(Profile)
        .filter(Profile.id == profile_id)
        .with_for_update()
        .populate_existing()
        .one_or_none()
    )
    if profile is None:
        raise NotFoundError(ApiErrorCode.E_PROFILE_NOT_FOUND, "Profile not found")
    return profile


def apply_delta(
    db: Session,
    profile_id: int,
    delta: int,
    kind: TransactionKind,
    *,
    post_id: int | None = None,
    comment_id: int | None = None,
    note: str | None = None,
    provider_payment_id: str | None = None,
    floor_at_zero: bool = False,
) -> LedgerEntry:
    """Apply ``delta`` to a profile balance and append the matching transaction.

    Args:
        db: Session whose transaction scopes the change.
        profile_id: Profile whose balance changes.
        delta: Signed credit change. Negative deltas are not rejected here;
            admission checks belong to the reward rules.
        kind: Reason for the change.
        post_id: Optional triggering post.
        comment_id: Optional triggering comment.
        note: Free-text description stored with the transaction.
        provider_payment_id: Payment provider id for purchases. Unique across
            the ledger, so a second settlement of the same payment fails.
        floor_at_zero: Clamp the change so the balance does not go below
            zero. The transaction records the clamped delta.

    Returns:
        The locked profile and the appended transaction.

    Raises:
        NotFoundError: If the profile does not exist.
    """
    profile = lock_profile(db, profile_id)

    applied = delta
    if floor_at_zero and profile.credits + delta < 0:
        applied = -profile.credits

    new_balance = profile.credits + applied
    profile.credits = new_balance
    entry = CreditTransaction(
        profile_id=profile.id,
        kind=kind,
        delta=applied,
        balance_after=new_balance,
        post_id=post_id,
        comment_id=comment_id,
        note=note,
        provider_payment_id=provider_payment_id,
    )
    db.add(entry)
    db.flush()

    logger.info(
        "ledger profile=%s kind=%s delta=%+d balance=%d",
        profile.id,
        kind.value,
        applied,
        new_balance,
    )
    return LedgerEntry(profile=profile, transaction=entry)


def ledger_sum(db: Session, profile_id: int) -> int:
    """Return the sum of all recorded deltas for ``profile_id``."""
    total = (
        db.query(func.coalesce(func.sum(CreditTransaction.delta), 0))
        .filter(CreditTransaction.profile_id == profile_id)
        .scalar()
    )
    return int(total or 0)


def history(db: Session, profile_id: int, *, newest_first: bool = True) -> list[CreditTransaction]:
    """Return every transaction of ``profile_id`` in append order (or reversed)."""
    order = CreditTransaction.id.desc() if newest_first else CreditTransaction.id.asc()
    return (
        db.query(CreditTransaction)
        .filter(CreditTransaction.profile_id == profile_id)
        .order_by(order)
        .all()
    )


def find_purchase(db: Session, provider_payment_id: str) -> CreditTransaction | None:
    """Return the purchase that settled ``provider_payment_id``, if any."""
    return (
        db.query(CreditTransaction)
        .filter(CreditTransaction.provider_payment_id == provider_payment_id)
        .one_or_none()
    )
