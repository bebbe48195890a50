"""Observability: logging setup and structured log messages."""
