"""Command-line interface for recfs."""
