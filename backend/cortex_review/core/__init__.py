"""Core module for configuration and utilities."""
from cortex_review.core.config import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
