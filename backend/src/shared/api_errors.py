"""
Remote store error parsing.

Classifies HTTP failures from the remote store into semantic categories and converts
them into the sync engine's exception taxonomy. Parsing is kept separate from
conversion so callers can log the category before raising.
"""

from dataclasses import dataclass
from typing import Any, Literal

import httpx

from services.exceptions import (
    AuthError,
    BookmarkSyncError,
    NetworkError,
    NotFoundError,
    ValidationError,
)

ErrorCategory = Literal[
    "auth",        # 401/403 - Invalid or expired session, or row-level access denied
    "not_found",   # 404 - Resource not found
    "validation",  # 400/422 - Rejected payload
    "transient",   # 5xx, 408, 429 or transport failures
    "internal",    # Anything else
]

TRANSIENT_STATUS_CODES = {408, 429}


@dataclass
class ParsedApiError:
    """Parsed API error with semantic category and message."""

    category: ErrorCategory
    message: str
    status_code: int | None = None


def parse_http_error(e: httpx.HTTPStatusError, entity_id: str = "") -> ParsedApiError:
    """
    Parse an HTTP status error into a semantic category.

    Args:
        e: The HTTP status error from httpx
        entity_id: ID of the bookmark the request targeted, for error messages

    Returns:
        ParsedApiError with category, message and status code
    """
    status = e.response.status_code

    if status == 401:
        return ParsedApiError("auth", "Invalid or expired session", status)

    if status == 403:
        return ParsedApiError("auth", "Access denied", status)

    if status == 404:
        msg = f"Bookmark '{entity_id}' not found" if entity_id else "Not found"
        return ParsedApiError("not_found", msg, status)

    if status in (400, 422):
        return ParsedApiError("validation", _extract_message(e, "Validation error"), status)

    if status >= 500 or status in TRANSIENT_STATUS_CODES:
        return ParsedApiError("transient", f"Remote store error {status}", status)

    return ParsedApiError("internal", f"Remote store error {status}", status)


def to_sync_error(exc: httpx.HTTPError, entity_id: str = "") -> BookmarkSyncError:
    """
    Convert an httpx failure into the sync engine's exception taxonomy.

    Transport errors (connect failures, timeouts, protocol errors) are always
    NetworkError. Unclassifiable status codes are treated as NetworkError too, since
    the caller can't do anything more specific with them.
    """
    if not isinstance(exc, httpx.HTTPStatusError):
        return NetworkError(f"Remote store unreachable: {exc}")

    parsed = parse_http_error(exc, entity_id)
    if parsed.category == "auth":
        return AuthError(parsed.message, status_code=parsed.status_code)
    if parsed.category == "not_found" and entity_id:
        return NotFoundError(entity_id)
    if parsed.category == "validation":
        return ValidationError("payload", parsed.message)
    return NetworkError(parsed.message, status_code=parsed.status_code)


def _extract_message(e: httpx.HTTPStatusError, default: str) -> str:
    """Extract the error message from a PostgREST-style error body."""
    try:
        body: Any = e.response.json()
    except ValueError:
        return default
    if not isinstance(body, dict):
        return default
    message = body.get("message") or body.get("detail")
    if isinstance(message, str) and message:
        return message
    return default
