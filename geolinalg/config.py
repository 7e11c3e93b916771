"""Configuration loading and logging setup."""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Dict, Optional, Union

import yaml

DEFAULT_CONFIG: Dict = {
    "fitting": {
        "max_iterations": 100,
        "convergence_limit": 1e-12,
        "null_space_fallback": True,
    },
    "logging": {
        "level": "INFO",
        "format": "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
    },
}


def _merge(base: Dict, override: Dict) -> Dict:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


def load_config(config_path: Optional[Union[str, Path]] = None) -> Dict:
    """Load configuration from a YAML file.

    Values found in the file override the built-in defaults; sections and
    keys missing from the file keep their default value.

    Args:
        config_path: Path to configuration file, None for defaults only

    Returns:
        Configuration dictionary
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    if config_path is None:
        return config

    with open(config_path, "r") as f:
        loaded = yaml.safe_load(f)

    if loaded is None:
        return config
    if not isinstance(loaded, dict):
        raise ValueError(f"Configuration file {config_path} must contain a mapping")

    return _merge(config, loaded)


def setup_logging(config: Optional[Dict] = None) -> None:
    """Configure root logging from the ``logging`` section of a configuration."""
    params = (config or DEFAULT_CONFIG).get("logging", {})
    level = params.get("level", "INFO")
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=params.get("format", DEFAULT_CONFIG["logging"]["format"]),
        handlers=[
            logging.StreamHandler(),
        ],
    )
