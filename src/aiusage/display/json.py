"""JSON output utilities for aiusage."""

from __future__ import annotations

import json
import sys

import msgspec
from rich.text import Text

from aiusage.errors.messages import get_remediation
from aiusage.models import UsageSnapshot

__all__ = [
    "encode_json",
    "output_json",
    "output_json_pretty",
    "snapshot_to_dict",
]


def encode_json(data: object) -> bytes:
    """Encode data as JSON bytes.

    Args:
        data: Any msgspec-serializable object

    Returns:
        JSON-encoded bytes
    """
    return msgspec.json.encode(data)


def output_json(data: object) -> None:
    """Output data as JSON to stdout.

    Args:
        data: Any msgspec-serializable object (Struct, dict, list, etc.)
    """
    sys.stdout.buffer.write(encode_json(data))
    sys.stdout.buffer.write(b"\n")


def output_json_pretty(data: object, indent: int = 2) -> None:
    """Output data as pretty-printed JSON to stdout.

    Args:
        data: Any msgspec-serializable object
        indent: Number of spaces for indentation
    """
    # msgspec handles Structs and datetimes; json handles the indentation
    python_obj = msgspec.json.decode(encode_json(data))
    sys.stdout.write(json.dumps(python_obj, indent=indent))
    sys.stdout.write("\n")


def snapshot_to_dict(snapshot: UsageSnapshot) -> dict:
    """Convert a snapshot to JSON-ready builtins.

    Adds derived fields (minimum remaining percent and, per failed
    provider, its badge and remediation hint) next to the raw data.
    """
    data = msgspec.to_builtins(snapshot)
    for raw, result in zip(data["results"], snapshot.results):
        if result.error_state is not None:
            raw["error_state"]["badge"] = result.error_state.badge_text
            hint = get_remediation(result.provider, result.error_state)
            raw["error_state"]["remediation"] = Text.from_markup(hint).plain if hint else None
    data["minimum_remaining_percent"] = snapshot.minimum_remaining_percent
    data["has_errors"] = snapshot.has_errors
    return data
