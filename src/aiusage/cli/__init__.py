"""CLI module for aiusage."""
