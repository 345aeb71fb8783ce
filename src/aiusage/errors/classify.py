"""Exception classification into provider error states."""

from __future__ import annotations

import asyncio
import json

import httpx
import msgspec

from aiusage.errors.http import extract_error_message
from aiusage.errors.redaction import sanitize
from aiusage.models import ErrorState


def classify_http_status(status: int, detail: str | None = None) -> ErrorState:
    """Map a non-success HTTP status to an error state.

    401 and 403 mean the credential was rejected; everything else is an
    endpoint error carrying the status and detail.
    """
    if status in (401, 403):
        return ErrorState.token_expired()

    message = f"HTTP {status}"
    if detail and detail != message:
        message = f"{message}: {sanitize(detail)}"
    return ErrorState.endpoint_error(message)


def classify_http_status_error(error: httpx.HTTPStatusError) -> ErrorState:
    """Classify an httpx status error using the response body."""
    detail = extract_error_message(error.response)
    return classify_http_status(error.response.status_code, detail)


def classify_exception(e: BaseException) -> ErrorState:
    """Classify any exception into an error state."""
    if isinstance(e, httpx.TimeoutException):
        return ErrorState.network_error("Request timed out")

    if isinstance(e, httpx.ConnectError):
        return ErrorState.network_error("Failed to connect to server")

    if isinstance(e, httpx.HTTPStatusError):
        return classify_http_status_error(e)

    if isinstance(e, httpx.TransportError):
        return ErrorState.network_error(sanitize(f"Network error: {e}"))

    # Parse errors
    if isinstance(e, json.JSONDecodeError):
        return ErrorState.parse_error("Failed to parse response")

    if isinstance(e, msgspec.ValidationError):
        return ErrorState.parse_error(f"Unexpected response shape: {e}")

    if isinstance(e, msgspec.DecodeError):
        return ErrorState.parse_error("Failed to parse response")

    if isinstance(e, (KeyError, ValueError, TypeError)):
        return ErrorState.parse_error(f"Invalid response format: {e}")

    if isinstance(e, asyncio.TimeoutError):
        return ErrorState.network_error("Operation timed out")

    # OSError and anything unexpected: report as transport-level failure
    return ErrorState.network_error(sanitize(str(e) or type(e).__name__))
