"""
Shared API error parsing for the catalog client.

Turns httpx status errors from the catalog API into a semantic category and a
human-readable message. Services decide what to do with the parsed error:
write paths raise it to the caller, read paths log it and degrade.
"""

from dataclasses import dataclass
from typing import Any, Literal

import httpx

ErrorCategory = Literal[
    "auth",        # 401 - Invalid credentials or expired token
    "forbidden",   # 403 - Authenticated but not allowed (e.g. non-admin mutation)
    "not_found",   # 404 - Title, rating or user not found
    "validation",  # 400/422 - Payload rejected by the API
    "conflict",    # 409 - Duplicate resource
    "internal",    # 5xx or unexpected errors
]


@dataclass
class ParsedApiError:
    """Parsed API error with semantic category and message."""

    category: ErrorCategory
    message: str
    status_code: int


def parse_http_error(  # noqa: PLR0911
    e: httpx.HTTPStatusError,
    entity_type: str = "",
    entity_id: str = "",
) -> ParsedApiError:
    """
    Parse HTTP error into semantic categories.

    The API's own message is preferred whenever the body carries one, so callers
    can show the collaborator's wording unchanged (e.g. "Invalid email or password").

    Args:
        e: The HTTP status error from httpx
        entity_type: Type of entity (e.g., "movie", "rating") for fallback messages
        entity_id: Identifier of the entity for fallback messages

    Returns:
        ParsedApiError with category, message and the HTTP status code
    """
    status = e.response.status_code
    api_message = _extract_message(e)

    if status == 401:
        return ParsedApiError("auth", api_message or "Invalid or expired token", status)

    if status == 403:
        return ParsedApiError("forbidden", api_message or "Access denied", status)

    if status == 404:
        if api_message:
            return ParsedApiError("not_found", api_message, status)
        if entity_id:
            msg = f"{entity_type.title()} '{entity_id}' not found" if entity_type else f"'{entity_id}' not found"  # noqa: E501
        else:
            msg = f"{entity_type.title()} not found" if entity_type else "Not found"
        return ParsedApiError("not_found", msg, status)

    if status == 409:
        return ParsedApiError("conflict", api_message or "Resource already exists", status)

    if status in (400, 422):
        return ParsedApiError("validation", api_message or "Validation error", status)

    return ParsedApiError("internal", api_message or f"API error {status}", status)


def _extract_message(e: httpx.HTTPStatusError) -> str:
    """
    Extract the API's error message, or an empty string when there is none.

    The catalog API answers with ASP.NET-style bodies: a plain string, a
    {"message": ...} object, or a problem-details object with "title" and an
    "errors" mapping of field name to messages.
    """
    try:
        body: Any = e.response.json()
    except ValueError:
        return ""

    if isinstance(body, str):
        return body
    if not isinstance(body, dict):
        return ""

    for key in ("message", "detail"):
        value = body.get(key)
        if isinstance(value, str) and value:
            return value

    errors = body.get("errors")
    if isinstance(errors, dict) and errors:
        messages = []
        for field, field_errors in errors.items():
            if isinstance(field_errors, list):
                messages.extend(f"{field}: {msg}" for msg in field_errors)
            else:
                messages.append(f"{field}: {field_errors}")
        return "; ".join(messages)
    if isinstance(errors, list) and errors:
        # Identity-style errors: [{"code": ..., "description": ...}]
        descriptions = [
            err.get("description", "") if isinstance(err, dict) else str(err)
            for err in errors
        ]
        return "; ".join(d for d in descriptions if d)

    title = body.get("title")
    if isinstance(title, str):
        return title
    return ""
