"""
Logging Setup
Root logger configuration for applications embedding the retrieval engine.
"""

import logging
from typing import Optional

from ..config import get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure the root logger.

    Args:
        level: Level name (defaults to LOG_LEVEL from settings)
    """
    level_name = (level or get_settings().log_level).upper()
    logging.basicConfig(level=getattr(logging, level_name, logging.INFO), format=LOG_FORMAT)

    # Quiet chatty HTTP clients
    for name in ("urllib3", "httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)
