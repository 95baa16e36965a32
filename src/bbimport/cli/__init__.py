"""Command-line entry points for the import queue."""
