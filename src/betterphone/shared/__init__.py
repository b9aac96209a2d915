"""Shared infrastructure: logging, database and error types."""
