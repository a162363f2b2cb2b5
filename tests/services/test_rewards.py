# tests/services/test_rewards.py
"""Tests for reward rules and helpful-answer resolution."""

import pytest

from inspira.core.errors import (
    ApiErrorCode,
    ForbiddenError,
    InvalidRequestError,
    NotFoundError,
)
from inspira.models import HelpfulMark, TransactionKind
from inspira.services import profiles, rewards


def test_package_catalog() -> None:
    starter = rewards.resolve_package("starter")
    assert (starter.credits, starter.price) == (50, 499)
    assert starter.price_in_rupees == 4.99
    assert rewards.resolve_package("value").credits == 150
    assert rewards.resolve_package("pro").price == 1999


@pytest.mark.parametrize("package_id", [None, "", "enterprise"])
def test_resolve_package_rejects_unknown(package_id) -> None:
    with pytest.raises(InvalidRequestError) as exc_info:
        rewards.resolve_package(package_id)
    assert exc_info.value.code is ApiErrorCode.E_INVALID_PACKAGE


def test_mark_helpful_moves_reward(
    make_user, make_post, make_comment, db_session, balance_of, transactions_of
) -> None:
    author = make_user("Author", credits=10)
    answerer = make_user("Answerer")
    post_id = make_post(author)
    comment_id = make_comment(answerer, post_id)

    mark = rewards.mark_helpful(db_session, author.ctx, post_id, comment_id)
    db_session.close()

    assert mark.post_id == post_id
    assert mark.comment_id == comment_id
    assert mark.marked_by_id == author.profile_id
    assert balance_of(author.profile_id) == 0
    assert balance_of(answerer.profile_id) == 10
    assert transactions_of(answerer.profile_id) == [(TransactionKind.HELPFUL_REWARD, 10, 10)]
    assert transactions_of(author.profile_id)[-1] == (TransactionKind.HELPFUL_REWARD, -10, 0)


def test_mark_helpful_twice_is_rejected(
    make_user, make_post, make_comment, db_session, balance_of
) -> None:
    author = make_user("Author", credits=30)
    first = make_user("First")
    second = make_user("Second")
    post_id = make_post(author)
    first_comment = make_comment(first, post_id)
    second_comment = make_comment(second, post_id)

    rewards.mark_helpful(db_session, author.ctx, post_id, first_comment)
    with pytest.raises(InvalidRequestError) as exc_info:
        rewards.mark_helpful(db_session, author.ctx, post_id, second_comment)
    assert exc_info.value.code is ApiErrorCode.E_ALREADY_RESOLVED
    db_session.close()

    assert balance_of(author.profile_id) == 20
    assert balance_of(second.profile_id) == 0


def test_mark_helpful_requires_affordable_reward(
    make_user, make_post, make_comment, db_session, balance_of
) -> None:
    author = make_user("Author", credits=9)
    answerer = make_user("Answerer")
    post_id = make_post(author)
    comment_id = make_comment(answerer, post_id)

    with pytest.raises(InvalidRequestError) as exc_info:
        rewards.mark_helpful(db_session, author.ctx, post_id, comment_id)
    assert exc_info.value.code is ApiErrorCode.E_INSUFFICIENT_CREDITS

    assert db_session.query(HelpfulMark).count() == 0
    db_session.close()
    assert balance_of(author.profile_id) == 9
    assert balance_of(answerer.profile_id) == 0


def test_mark_helpful_rejects_own_comment(make_user, make_post, make_comment, db_session) -> None:
    author = make_user("Author", credits=50)
    post_id = make_post(author)
    comment_id = make_comment(author, post_id)

    with pytest.raises(InvalidRequestError) as exc_info:
        rewards.mark_helpful(db_session, author.ctx, post_id, comment_id)
    assert exc_info.value.code is ApiErrorCode.E_SELF_REWARD


def test_mark_helpful_only_by_post_author(
    make_user, make_post, make_comment, db_session
) -> None:
    author = make_user("Author", credits=50)
    stranger = make_user("Stranger", credits=50)
    post_id = make_post(author)
    comment_id = make_comment(stranger, post_id)

    with pytest.raises(ForbiddenError):
        rewards.mark_helpful(db_session, stranger.ctx, post_id, comment_id)


def test_mark_helpful_comment_must_belong_to_post(
    make_user, make_post, make_comment, db_session
) -> None:
    author = make_user("Author", credits=50)
    answerer = make_user("Answerer")
    post_id = make_post(author)
    other_post_id = make_post(author, title="Another question")
    comment_id = make_comment(answerer, other_post_id)

    with pytest.raises(NotFoundError) as exc_info:
        rewards.mark_helpful(db_session, author.ctx, post_id, comment_id)
    assert exc_info.value.code is ApiErrorCode.E_COMMENT_NOT_FOUND


def test_mark_helpful_missing_comment_id(make_user, make_post, db_session) -> None:
    author = make_user("Author", credits=50)
    post_id = make_post(author)

    with pytest.raises(InvalidRequestError) as exc_info:
        rewards.mark_helpful(db_session, author.ctx, post_id, None)
    assert exc_info.value.code is ApiErrorCode.E_MISSING_FIELD


def test_mark_helpful_unknown_post(make_user, db_session) -> None:
    author = make_user("Author", credits=50)

    with pytest.raises(NotFoundError) as exc_info:
        rewards.mark_helpful(db_session, author.ctx, 999, 1)
    assert exc_info.value.code is ApiErrorCode.E_POST_NOT_FOUND


def test_resolved_post_stays_resolved_after_answerer_leaves(
    make_user, make_post, make_comment, db_session, balance_of, transactions_of
) -> None:
    author = make_user("Author", credits=100)
    first = make_user("First")
    second = make_user("Second")
    post_id = make_post(author)
    first_comment = make_comment(first, post_id)
    second_comment = make_comment(second, post_id)

    rewards.mark_helpful(db_session, author.ctx, post_id, first_comment)
    profiles.delete_account(db_session, first.ctx)

    with pytest.raises(InvalidRequestError) as exc_info:
        rewards.mark_helpful(db_session, author.ctx, post_id, second_comment)
    assert exc_info.value.code is ApiErrorCode.E_ALREADY_RESOLVED

    mark = db_session.query(HelpfulMark).filter(HelpfulMark.post_id == post_id).one()
    assert mark.comment_id is None
    db_session.close()

    assert balance_of(author.profile_id) == 90
    assert balance_of(second.profile_id) == 0
    debits = [
        t for t in transactions_of(author.profile_id) if t[0] is TransactionKind.HELPFUL_REWARD
    ]
    assert debits == [(TransactionKind.HELPFUL_REWARD, -10, 90)]


def test_package_price_per_credit() -> None:
    assert rewards.resolve_package("starter").price_per_credit == 0.1
    assert rewards.resolve_package("value").price_per_credit == 0.087
    assert rewards.resolve_package("pro").price_per_credit == 0.067
