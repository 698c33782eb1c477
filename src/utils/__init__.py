"""
Utility functions for the pose coach.
"""

from .io_utils import get_config_section, load_config, setup_logging

__all__ = [
    "get_config_section",
    "load_config",
    "setup_logging",
]
