"""Identity-token and payment-signature verification."""
from __future__ import annotations

import hashlib
import hmac
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from inspira.core.settings import settings


@dataclass(frozen=True)
class VerifiedIdentity:
    """Claims extracted from a verified identity token."""

    external_id: str
    email: str | None = None
    name: str | None = None
    image_url: str | None = None


def verify_identity_token(token: str) -> VerifiedIdentity | None:
    """Verify an identity token minted by the auth provider.

    Args:
        token: Raw bearer token from the request.

    Returns:
        The verified identity, or None if the token is malformed, expired,
        signed with another key or missing a subject.
    """
    options = {"verify_aud": settings.identity_token_audience is not None}
    try:
        payload = jwt.decode(
            token,
            settings.identity_token_secret,
            algorithms=[settings.identity_token_algorithm],
            audience=settings.identity_token_audience,
            options=options,
        )
    except JWTError:
        return None

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        return None
    return VerifiedIdentity(
        external_id=subject,
        email=payload.get("email"),
        name=payload.get("name"),
        image_url=payload.get("picture"),
    )


def create_identity_token(
    external_id: str,
    extra_claims: dict[str, str] | None = None,
    expires_minutes: int = 60,
) -> str:
    """Mint an identity token the way the auth provider does (used by tooling and tests)."""
    to_encode: dict[str, object] = {"sub": external_id}
    if extra_claims:
        to_encode.update(extra_claims)
    if settings.identity_token_audience:
        to_encode["aud"] = settings.identity_token_audience
    to_encode["exp"] = datetime.now(UTC) + timedelta(minutes=expires_minutes)
    encoded: str = jwt.encode(
        to_encode,
        settings.identity_token_secret,
        algorithm=settings.identity_token_algorithm,
    )
    return encoded


def payment_signature(order_id: str, payment_id: str, secret: str) -> str:
    """Return the hex HMAC-SHA256 the provider computes over ``orderId|paymentId``."""
    message = f"{order_id}|{payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify_payment_signature(order_id: str, payment_id: str, signature: str, secret: str) -> bool:
    """Compare a provider signature in constant time."""
    if not secret:
        return False
    expected = payment_signature(order_id, payment_id, secret)
    return hmac.compare_digest(expected.encode("ascii"), signature.encode("utf-8"))
