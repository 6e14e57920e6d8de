"""Shared utilities."""

from .decorators import time_execution

__all__ = ["time_execution"]
