"""
Utils package
"""

from bluework.utils.config import Settings, get_settings
from bluework.utils.logger import setup_logger, memory_handler

__all__ = [
    "Settings",
    "get_settings",
    "setup_logger",
    "memory_handler",
]
