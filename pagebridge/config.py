"""
pagebridge/config.py

Environment variable configuration.

Contains:
- Config: Centralized settings from environment variables
- LOG_LEVEL, CHROME_HOST/CHROME_PORT, wait engine timings, etc.
"""

import logging
import os
from typing import Any

from dotenv import load_dotenv

load_dotenv()

# websockets logs every frame at DEBUG
logging.getLogger("websockets").setLevel(logging.WARNING)


class Config():
    """
    Centralized configuration for environment variables.
    """

    # logging configuration
    LOG_LEVEL: int = logging.getLevelNamesMapping().get(
        os.getenv("LOG_LEVEL", "INFO").upper(),
        logging.INFO
    )
    LOG_DATE_FORMAT: str = os.getenv("LOG_DATE_FORMAT", "%Y-%m-%d %H:%M:%S")
    LOG_FORMAT: str = os.getenv("LOG_FORMAT", "[%(asctime)s] %(levelname)s:%(name)s:%(message)s")

    # Chrome DevTools endpoint
    CHROME_HOST: str = os.getenv("PAGEBRIDGE_CHROME_HOST", "127.0.0.1")
    CHROME_PORT: int = int(os.getenv("PAGEBRIDGE_CHROME_PORT", "9222"))
    HOST_READY_TIMEOUT: float = float(os.getenv("PAGEBRIDGE_HOST_READY_TIMEOUT", "30"))

    # Wait engine timings (milliseconds)
    WAIT_TICK_MS: int = int(os.getenv("PAGEBRIDGE_WAIT_TICK_MS", "100"))
    WAIT_DELAY_MS: int = int(os.getenv("PAGEBRIDGE_WAIT_DELAY_MS", "200"))
    WAIT_FN_TICK_MS: int = int(os.getenv("PAGEBRIDGE_WAIT_FN_TICK_MS", "250"))
    WAIT_GLOBAL_TIMEOUT_MS: int = int(os.getenv("PAGEBRIDGE_WAIT_GLOBAL_TIMEOUT_MS", "30000"))

    @classmethod
    def as_dict(cls) -> dict[str, Any]:
        """
        Return a dictionary of all UPPERCASE class attributes and their values.
        Return:
            dict[str, Any]: A dictionary of all UPPERCASE class attributes and their values.
        """
        return {
            key: getattr(cls, key)
            for key in dir(cls)
            if key.isupper()
        }
