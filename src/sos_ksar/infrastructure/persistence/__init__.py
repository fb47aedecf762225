"""Persistence backends (PostgreSQL, Redis)."""
