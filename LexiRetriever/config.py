"""
Configuration loading for LexiRetriever.

Settings live in ``config.json`` next to this module. Values found in the file
override the built-in defaults key by key, so a partial file is valid.
"""
import copy
import json
import logging
import os
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

CONFIG_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "config.json")

DEFAULT_CONFIG: Dict[str, Any] = {
    "preprocessing": {
        "lowercase": True,
        "stop_words": {"use": True, "language": "en"},
        "nonsense_tokens": {"remove": True, "min_word_length": 2},
    },
    "pipeline_order": ["tokenize", "lowercase", "nonsense_tokens", "stop_words"],
    "boolean_search": {"optimize": True, "cache_queries": True},
    "vector_search": {"min_word_length": 3, "top_n": 10},
    "weighting": {"workers": 1},
    "logging": {"level": "INFO"},
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from a JSON file, falling back to defaults.

    Args:
        config_path: Path to a config file (defaults to the packaged config.json)

    Returns:
        Configuration dictionary with every default key present
    """
    path = config_path or CONFIG_PATH

    if not os.path.exists(path):
        if config_path:
            logger.warning("Config file %s not found, using default settings", path)
        return copy.deepcopy(DEFAULT_CONFIG)

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning("Could not load config file %s: %s. Using default settings.", path, e)
        return copy.deepcopy(DEFAULT_CONFIG)

    if not isinstance(data, dict):
        logger.warning("Config file %s does not hold a JSON object, using default settings", path)
        return copy.deepcopy(DEFAULT_CONFIG)

    return _merge(DEFAULT_CONFIG, data)
