"""Explicit presence checks for request input."""

from __future__ import annotations

from collections.abc import Iterable

from inspira.core.errors import ApiErrorCode, InvalidRequestError


def is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


def require_text(value: str | None, field: str) -> str:
    """Return ``value`` stripped, or reject it as missing when absent or blank."""
    if value is None or not value.strip():
        raise InvalidRequestError(ApiErrorCode.E_MISSING_FIELD, f"{field} is required")
    return value.strip()


def clean_tags(values: Iterable[str] | None) -> list[str]:
    """Drop blank entries and duplicates while keeping order."""
    seen: dict[str, None] = {}
    for value in values or ():
        if not is_blank(value):
            seen.setdefault(value.strip(), None)
    return list(seen)
