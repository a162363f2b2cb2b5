# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from dataclasses import dataclass, field
from itertools import count
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("IDENTITY_TOKEN_SECRET", "test-identity-secret")
os.environ.setdefault("RAZORPAY_KEY_ID", "rzp_test_key")
os.environ.setdefault("RAZORPAY_KEY_SECRET", "test-razorpay-secret")

from inspira.api.v1.dependencies import get_notifier
from inspira.core.security import create_identity_token, verify_identity_token
from inspira.db.session import Base, create_db_engine, get_db, get_session_factory
from inspira.main import app as fastapi_app
from inspira.models import Comment, CreditTransaction, Post, Profile, TransactionKind
from inspira.services import ledger
from inspira.services.identity import AuthContext, resolve_identity
from inspira.services.payments import get_payment_gateway
from inspira.services.storage import InMemoryStorage, get_storage

TEST_DB_URL = "sqlite://"

_EXTERNAL_ID_COUNTER = count(1)
_ORDER_COUNTER = count(1)


@dataclass
class TestUser:
    """A resolved identity plus the headers that authenticate it."""

    __test__ = False

    ctx: AuthContext
    token: str
    name: str

    @property
    def profile_id(self) -> int:
        return self.ctx.profile_id

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


@dataclass
class RecordingNotifier:
    """Collects notifications instead of pushing them to sockets."""

    sent: list[tuple[int, dict[str, Any]]] = field(default_factory=list)

    def notify(self, profile_id: int, payload: dict[str, Any]) -> None:
        self.sent.append((profile_id, payload))

    def types_for(self, profile_id: int) -> list[str]:
        return [payload["type"] for pid, payload in self.sent if pid == profile_id]


@dataclass
class FakeGateway:
    """Payment gateway double that hands out sequential order ids."""

    orders: list[dict[str, Any]] = field(default_factory=list)

    def create_order(self, amount: int, currency: str, receipt: str, notes: dict[str, str]) -> str:
        order_id = f"order_test_{next(_ORDER_COUNTER)}"
        self.orders.append(
            {
                "id": order_id,
                "amount": amount,
                "currency": currency,
                "receipt": receipt,
                "notes": notes,
            }
        )
        return order_id


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_db_engine(TEST_DB_URL, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="session")
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture(autouse=True)
def clean_database(engine: Engine) -> Iterator[None]:
    yield
    # Ensure each test sees a clean database even if commits occurred.
    with engine.begin() as cleanup_conn:
        for table in reversed(Base.metadata.sorted_tables):
            cleanup_conn.execute(table.delete())


@pytest.fixture()
def db_session(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    """Session for service-level tests.

    The in-memory database has a single connection, so tests must not keep
    this session inside a transaction while another session is working.
    """
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_dependencies(
    app: FastAPI,
    session_factory: sessionmaker[Session],
    storage: InMemoryStorage,
    notifier: RecordingNotifier,
    gateway: FakeGateway,
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    overrides: dict[Callable[..., Any], Callable[..., Any]] = {
        get_db: _get_session_override,
        get_session_factory: lambda: session_factory,
        get_storage: lambda: storage,
        get_payment_gateway: lambda: gateway,
        get_notifier: lambda: notifier,
    }
    app.dependency_overrides.update(overrides)
    try:
        yield
    finally:
        for dependency in overrides:
            app.dependency_overrides.pop(dependency, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def make_user(session_factory: sessionmaker[Session]) -> Callable[..., TestUser]:
    """Create a user through the identity resolver and seed its balance."""

    def _make(name: str = "Test User", credits: int = 0) -> TestUser:
        external_id = f"user_{next(_EXTERNAL_ID_COUNTER)}"
        token = create_identity_token(external_id, {"name": name})
        identity = verify_identity_token(token)
        assert identity is not None
        with session_factory() as session:
            ctx = resolve_identity(session, identity)
            if credits:
                ledger.apply_delta(
                    session,
                    ctx.profile_id,
                    credits,
                    TransactionKind.PURCHASE,
                    note="Seed balance",
                )
                session.commit()
        return TestUser(ctx=ctx, token=token, name=name)

    return _make


@pytest.fixture()
def make_post(session_factory: sessionmaker[Session]) -> Callable[..., int]:
    """Insert a post directly (no fee) and return its id."""

    def _make(author: TestUser, title: str = "How do I start?", content: str = "Details") -> int:
        with session_factory() as session:
            post = Post(title=title, content=content, author_id=author.profile_id)
            session.add(post)
            session.commit()
            return post.id

    return _make


@pytest.fixture()
def make_comment(session_factory: sessionmaker[Session]) -> Callable[..., int]:
    """Insert a comment directly and return its id."""

    def _make(author: TestUser, post_id: int, content: str = "Try this") -> int:
        with session_factory() as session:
            comment = Comment(content=content, author_id=author.profile_id, post_id=post_id)
            session.add(comment)
            session.commit()
            return comment.id

    return _make


@pytest.fixture()
def balance_of(session_factory: sessionmaker[Session]) -> Callable[[int], int]:
    def _balance(profile_id: int) -> int:
        with session_factory() as session:
            credits = session.query(Profile.credits).filter(Profile.id == profile_id).scalar()
            assert credits == ledger.ledger_sum(session, profile_id)
            return int(credits)

    return _balance


@pytest.fixture()
def transactions_of(session_factory: sessionmaker[Session]) -> Callable[[int], list[Any]]:
    """Ledger rows of a profile as ``(kind, delta, balance_after)`` tuples, oldest first."""

    def _rows(profile_id: int) -> list[Any]:
        with session_factory() as session:
            rows = (
                session.query(CreditTransaction)
                .filter(CreditTransaction.profile_id == profile_id)
                .order_by(CreditTransaction.id.asc())
                .all()
            )
            return [(row.kind, row.delta, row.balance_after) for row in rows]

    return _rows
