"""Command-line interface for recallbot."""
