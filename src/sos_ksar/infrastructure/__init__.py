"""Infrastructure layer.

This package provides implementations for external system integrations:
persistence (PostgreSQL, Redis) and the Google OAuth client.
"""
