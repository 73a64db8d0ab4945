"""Command-line interface for memdock."""
