"""Persistence layer: local SQLite cache."""
