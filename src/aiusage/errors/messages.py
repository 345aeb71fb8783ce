"""Provider-specific remediation hints shown next to error badges."""

from __future__ import annotations

from aiusage.models import ErrorKind
from aiusage.models import ErrorState

AUTH_REMEDIATION: dict[str, str] = {
    "claude": (
        "Log in with the Claude CLI, or run 'claude setup-token' and save it "
        "with: [cyan]aiusage key claude set[/cyan]"
    ),
    "codex": "Log in with the Codex CLI ([cyan]codex login[/cyan]).",
    "gemini": (
        "Log in with the Gemini CLI using a Google account "
        "(API-key and Vertex AI auth do not expose quota)."
    ),
    "zai": "Set ZAI_API_KEY or run: [cyan]aiusage key zai set[/cyan]",
    "cerebras": "Set CEREBRAS_API_KEY or run: [cyan]aiusage key cerebras set[/cyan]",
    "kimi": "Set KIMI_API_KEY or run: [cyan]aiusage key kimi set[/cyan]",
    "minimax": "Set MINIMAX_KEY or run: [cyan]aiusage key minimax set[/cyan]",
}

GENERAL_REMEDIATION: dict[ErrorKind, str] = {
    ErrorKind.NETWORK_ERROR: "Check your internet connection. Retrying on next poll.",
    ErrorKind.PARSE_ERROR: "The provider API may have changed.",
    ErrorKind.ENDPOINT_ERROR: "The provider service may be having issues. Retrying on next poll.",
}


def get_remediation(provider_id: str, error: ErrorState) -> str | None:
    """Get a remediation hint for a provider error.

    Args:
        provider_id: Provider identifier
        error: The error being displayed

    Returns:
        Remediation message or None
    """
    if error.badge_kind in (ErrorKind.AUTH_NEEDED, ErrorKind.TOKEN_EXPIRED):
        return AUTH_REMEDIATION.get(provider_id)
    return GENERAL_REMEDIATION.get(error.kind)
