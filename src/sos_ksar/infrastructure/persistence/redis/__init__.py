"""Redis infrastructure for the session cache and OAuth state."""

from .client import RedisClient

__all__ = ["RedisClient"]
