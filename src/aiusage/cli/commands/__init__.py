"""CLI commands for aiusage."""
