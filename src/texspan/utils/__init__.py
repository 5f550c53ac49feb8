"""Utility modules for texspan.

Provides:
- logger: get_logger for logging
"""

from texspan.utils.logger import get_logger

__all__ = [
    "get_logger",
]
