"""Cortex security review: session and validation state core."""

__version__ = "1.0.0"
