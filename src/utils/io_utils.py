"""
I/O utilities for loading tunables and configuring logging.
"""

import logging
from pathlib import Path
from typing import Dict, Optional

import yaml

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "config" / "coaching.yaml"

_CONFIG_CACHE: Optional[Dict] = None


def load_config(config_path: str) -> Dict:
    """
    Loads coaching configuration from a YAML file.

    Args:
        config_path (str): Path to the YAML configuration file.

    Returns:
        Dict: The loaded configuration (empty if the file is empty).
    """
    with open(config_path, 'r') as f:
        config = yaml.safe_load(f)
    return config or {}


def get_config_section(section: str, config_path: Optional[Path] = None) -> Dict:
    """Lazy-load and cache ``config/coaching.yaml`` and return one section.

    A missing file or section yields an empty dict so callers fall back
    to their built-in defaults.
    """
    global _CONFIG_CACHE
    if config_path is not None:
        path = Path(config_path)
        return load_config(str(path)).get(section, {}) if path.exists() else {}

    if _CONFIG_CACHE is None:
        if DEFAULT_CONFIG_PATH.exists():
            _CONFIG_CACHE = load_config(str(DEFAULT_CONFIG_PATH))
            logger.debug("Loaded tunables from %s", DEFAULT_CONFIG_PATH)
        else:
            logger.warning("No config at %s, using built-in defaults.", DEFAULT_CONFIG_PATH)
            _CONFIG_CACHE = {}
    return dict(_CONFIG_CACHE.get(section) or {})


def setup_logging(level: int = logging.INFO) -> None:
    """Configure root logging once for command-line entry points."""
    if not logging.getLogger().handlers:
        logging.basicConfig(level=level, format="%(levelname)s | %(name)s | %(message)s")
