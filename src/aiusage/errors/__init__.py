"""Error handling for aiusage."""

from aiusage.errors.classify import (
    classify_exception,
    classify_http_status,
    classify_http_status_error,
)
from aiusage.errors.http import extract_error_message
from aiusage.errors.messages import (
    AUTH_REMEDIATION,
    GENERAL_REMEDIATION,
    get_remediation,
)
from aiusage.errors.redaction import sanitize

__all__ = [
    # Classification functions
    "classify_exception",
    "classify_http_status",
    "classify_http_status_error",
    # HTTP utilities
    "extract_error_message",
    # Message templates
    "AUTH_REMEDIATION",
    "GENERAL_REMEDIATION",
    "get_remediation",
    # Redaction
    "sanitize",
]
