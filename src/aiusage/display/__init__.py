"""Output rendering for aiusage."""
