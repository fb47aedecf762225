"""API schemas for request/response serialization.

Provides Pydantic models for consistent success and error envelopes.
"""
