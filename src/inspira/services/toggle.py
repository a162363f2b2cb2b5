"""Two-state toggle actions backed by a uniqueness-constrained row.

A row in ``model`` keyed by (target, voter) means "voted". Toggling reads
that row inside the caller's transaction and inserts or deletes it. The
data-store uniqueness constraint stays as the safety net for concurrent
first votes: when the insert loses that race the toggle flips to removal.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

ToggleHook = Callable[[], object]


@dataclass(frozen=True)
class ToggleResult:
    """Final state for the voter plus the target's vote count."""

    voted: bool
    count: int


def _find_vote(
    db: Session, model: type[Any], target_column: str, target_id: int, voter_id: int
) -> Any:
    return (
        db.query(model)
        .filter(getattr(model, target_column) == target_id, model.voter_id == voter_id)
        .one_or_none()
    )


def _insert_vote(
    db: Session, model: type[Any], target_column: str, target_id: int, voter_id: int
) -> bool:
    """Insert the vote row inside a savepoint; False when a concurrent insert won."""
    try:
        with db.begin_nested():
            db.add(model(**{target_column: target_id, "voter_id": voter_id}))
    except IntegrityError:
        logger.info(
            "Concurrent vote on %s %s by %s; flipping to removal",
            model.__tablename__,
            target_id,
            voter_id,
        )
        return False
    return True


def _count(db: Session, model: type[Any], target_column: str, target_id: int) -> int:
    total = (
        db.query(func.count())
        .select_from(model)
        .filter(getattr(model, target_column) == target_id)
        .scalar()
    )
    return int(total or 0)


def toggle(
    db: Session,
    model: type[Any],
    target_column: str,
    target_id: int,
    voter_id: int,
    *,
    on_vote: ToggleHook | None = None,
    on_unvote: ToggleHook | None = None,
) -> ToggleResult:
    """Flip the (target, voter) vote and run the matching reward hook.

    Args:
        db: Session; the caller commits.
        model: Vote model with a ``voter_id`` column and a ``target_column``.
        target_column: Name of the column holding the voted-on id.
        target_id: Id of the post or comment.
        voter_id: Profile casting the vote.
        on_vote: Called after a vote row is inserted.
        on_unvote: Called after a vote row is deleted.
    """
    existing = _find_vote(db, model, target_column, target_id, voter_id)

    if existing is None:
        if _insert_vote(db, model, target_column, target_id, voter_id):
            if on_vote is not None:
                on_vote()
            return ToggleResult(voted=True, count=_count(db, model, target_column, target_id))
        existing = _find_vote(db, model, target_column, target_id, voter_id)
        if existing is None:
            # The racing request already toggled its vote away again.
            return ToggleResult(voted=False, count=_count(db, model, target_column, target_id))

    db.delete(existing)
    db.flush()
    if on_unvote is not None:
        on_unvote()
    return ToggleResult(voted=False, count=_count(db, model, target_column, target_id))
