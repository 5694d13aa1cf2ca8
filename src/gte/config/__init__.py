"""Configuration package."""

from gte.config.settings import Settings

__all__ = ["Settings"]
