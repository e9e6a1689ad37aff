"""Command line interface (``ghsync``)."""
