"""
Utilities Package
"""

from .logging import LOG_FORMAT, setup_logging

__all__ = ["LOG_FORMAT", "setup_logging"]
