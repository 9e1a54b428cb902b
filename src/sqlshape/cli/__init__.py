"""Command-line interface for sqlshape."""
