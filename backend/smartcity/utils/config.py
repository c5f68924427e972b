import copy
import os
import yaml
from pathlib import Path
import logging
from typing import Dict, Any, Union

class ConfigError(Exception):
    """Custom exception for configuration errors."""
    pass

DEFAULT_CONFIG: Dict[str, Any] = {
    "logging": {
        "level": "INFO",
    },
    "server": {
        "host": "0.0.0.0",
        "port": 9002,
        "cors_origins": [
            "http://localhost",
            "http://localhost:3000",
        ],
    },
    "traffic": {
        # south, west, north, east
        "default_bbox": [43.56, 51.05, 43.74, 51.27],
        "summary": {
            "default_steps": 7,
            "min_steps": 3,
            "max_steps": 12,
            "concurrency": 6,
            "deadline_seconds": 8.0,
            "top_hotspots": 8,
        },
        "areas": {
            "concurrency": 6,
            "deadline_seconds": 12.0,
            "grid_rows": 3,
            "grid_cols": 4,
            "neighbour_delta": 0.003,
            "sector_label": "Sector",
            "name_pattern": "микрорайон|мкр|микроаудан",
        },
        "flow_provider": {
            "base_url": "https://api.tomtom.com",
            "api_key": None,
            "style": "relative",
            "zoom": 12,
            "unit": "KMPH",
            "request_timeout_seconds": 10.0,
        },
        "area_provider": {
            "overpass_url": "https://overpass-api.de/api/interpreter",
            "query_timeout_seconds": 25,
        },
    },
}

# Environment variable -> path inside the config dict
ENV_OVERRIDES = {
    "TOMTOM_API_KEY": ("traffic", "flow_provider", "api_key"),
    "OVERPASS_URL": ("traffic", "area_provider", "overpass_url"),
}

def merge_dicts(source: Dict[Any, Any], destination: Dict[Any, Any]) -> Dict[Any, Any]:
    """
    Recursively merges two dictionaries.
    Args:
        source: The source dictionary to merge from.
        destination: The destination dictionary to merge into.
    Returns:
        The merged dictionary.
    """
    for key, value in source.items():
        if isinstance(value, dict):
            # get node or create one
            node = destination.setdefault(key, {})
            merge_dicts(value, node)
        else:
            destination[key] = value
    return destination

def apply_env_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
    """Copies secrets and endpoints from the environment into the config dict."""
    for env_name, path in ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if not value:
            continue
        node = config
        for key in path[:-1]:
            node = node.setdefault(key, {})
        node[path[-1]] = value
    return config

def load_config(config_file: Union[str, Path] = Path("config.yaml")) -> Dict[str, Any]:
    """
    Loads the YAML configuration file, merging it with default settings.
    Args:
        config_file: The path to the configuration file.
    Returns:
        A dictionary containing the application configuration.
    Raises:
        ConfigError: If the configuration file is invalid or unreadable.
    """
    config_file = Path(config_file)
    config = copy.deepcopy(DEFAULT_CONFIG)
    if config_file.exists():
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                user_config = yaml.safe_load(f)
            if user_config: # Check if the user_config is not None
                if not isinstance(user_config, dict):
                    raise ConfigError(f"Top level of {config_file} must be a mapping.")
                config = merge_dicts(user_config, config)
        except ConfigError:
            raise
        except yaml.YAMLError as e:
            logging.error(f"Error parsing YAML file: {e}")
            raise ConfigError(f"Error parsing YAML file: {e}") from e
        except Exception as e: # Catch any other unexpected errors during file processing
            logging.error(f"Error loading configuration file: {e}")
            raise ConfigError(f"Error loading configuration file: {e}") from e
    else:
        logging.warning(f"Configuration file not found at {config_file}. Using default settings.")
    return apply_env_overrides(config)
