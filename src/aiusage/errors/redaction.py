"""Redaction of secrets from text that may reach logs or the UI."""

from __future__ import annotations

import re

_BEARER_PATTERN = re.compile(r"(?i)(bearer\s+)[a-z0-9\-._~+/]+=*")


def sanitize(text: str) -> str:
    """Replace bearer tokens in text with a placeholder."""
    return _BEARER_PATTERN.sub(r"\1<redacted>", text)
