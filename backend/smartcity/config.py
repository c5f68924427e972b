# backend/smartcity/config.py

import logging
import os
from pathlib import Path
from typing import Dict, Any, Optional

from smartcity.utils.config import load_config, ConfigError

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Loaded once at startup, read by main.py
_config_instance: Optional[Dict[str, Any]] = None

def default_config_path() -> Path:
    """SMARTCITY_CONFIG if set, otherwise backend/configs/config.yaml."""
    env_path = os.environ.get("SMARTCITY_CONFIG")
    if env_path:
        return Path(env_path)
    return Path(__file__).parent.parent / "configs" / "config.yaml"

def configure_logging(config: Dict[str, Any]) -> int:
    """Applies `logging.level` to the root and `smartcity` loggers; returns the level used."""
    level_name = str(config.get('logging', {}).get('level', 'INFO')).upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)
    logging.getLogger('smartcity').setLevel(level)
    return level

def initialize_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Loads the traffic service configuration and reconfigures logging from it.
    Later calls return the already loaded dict.
    """
    global _config_instance
    if _config_instance is not None:
        return _config_instance

    path = Path(config_path) if config_path else default_config_path()
    logger.info(f"Loading traffic service configuration from: {path}")
    try:
        config = load_config(path)
    except ConfigError as e:
        logger.critical(f"Invalid configuration at {path}: {e}", exc_info=True)
        raise RuntimeError(f"Configuration loading failed: {e}") from e

    level = configure_logging(config)
    logger.info(f"Logging level set to {logging.getLevelName(level)}.")

    if not config.get('traffic', {}).get('flow_provider', {}).get('api_key'):
        logger.warning("No traffic flow API key configured (TOMTOM_API_KEY). Flow queries will be rejected by the provider.")

    _config_instance = config
    return _config_instance
