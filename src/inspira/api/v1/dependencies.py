"""Shared API dependencies for authentication and common functionality."""

from typing import Annotated

from fastapi import BackgroundTasks, Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from inspira.core.errors import UnauthenticatedError
from inspira.core.security import verify_identity_token
from inspira.db.session import get_db
from inspira.services.identity import AuthContext, resolve_identity
from inspira.services.notifications import BackgroundNotifier, ConnectionRegistry, Notifier
from inspira.services.payments import PaymentGateway, get_payment_gateway
from inspira.services.storage import ObjectStorage, get_storage

# Missing credentials are reported through our own error envelope, not FastAPI's 403.
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_auth_context(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    db: SessionDep,
) -> AuthContext:
    """Resolve the bearer identity token to the caller's context.

    Raises:
        UnauthenticatedError: If no token is sent or it does not verify.
    """
    if credentials is None:
        raise UnauthenticatedError()
    identity = verify_identity_token(credentials.credentials)
    if identity is None:
        raise UnauthenticatedError("Could not validate credentials")
    return resolve_identity(db, identity)


AuthDep = Annotated[AuthContext, Depends(get_auth_context)]


def get_connection_registry(request: Request) -> ConnectionRegistry:
    registry: ConnectionRegistry = request.app.state.connections
    return registry


def get_notifier(
    background_tasks: BackgroundTasks,
    registry: Annotated[ConnectionRegistry, Depends(get_connection_registry)],
) -> Notifier:
    return BackgroundNotifier(registry, background_tasks)


StorageDep = Annotated[ObjectStorage, Depends(get_storage)]
GatewayDep = Annotated[PaymentGateway, Depends(get_payment_gateway)]
NotifierDep = Annotated[Notifier, Depends(get_notifier)]
