"""Command-line interface for Division."""
