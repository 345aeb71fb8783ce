"""aiusage: Live quota monitor for AI coding-assistant subscriptions."""

from __future__ import annotations

__version__ = "0.1.0"

from aiusage.models import ErrorKind
from aiusage.models import ErrorState
from aiusage.models import ModelUsageWindow
from aiusage.models import ProviderID
from aiusage.models import ProviderUsageResult
from aiusage.models import UsageSnapshot
from aiusage.models import UsageWindow
from aiusage.models import last_updated_text
from aiusage.models import reset_text

__all__ = [
    "__version__",
    "ProviderID",
    "UsageWindow",
    "ModelUsageWindow",
    "ErrorKind",
    "ErrorState",
    "ProviderUsageResult",
    "UsageSnapshot",
    "reset_text",
    "last_updated_text",
]


def main() -> None:
    """Entry point for the aiusage CLI."""
    from aiusage.cli.app import run_app

    run_app()
