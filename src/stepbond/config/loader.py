"""Configuration loading: packaged defaults, then a YAML file, then overrides."""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .schema import Config

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"


def _read_yaml(path) -> Dict[str, Any]:
    with open(path, 'r') as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def _merge(base: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(yaml_path: str = None, overrides: Optional[Dict[str, Any]] = None) -> Config:
    """
    Load configuration layered over the packaged defaults.

    Keys missing from `yaml_path` keep their default values. `overrides`
    is merged last, section by section.

    Args:
        yaml_path: Optional YAML file with protocol/asset_validation/simulation sections
        overrides: Nested dict applied after the file

    Returns:
        Config object
    """
    data = _read_yaml(DEFAULTS_PATH)
    if yaml_path is not None:
        data = _merge(data, _read_yaml(yaml_path))
    if overrides:
        data = _merge(data, overrides)
    return Config.from_dict(data)


def config_from_dict(data: Optional[Dict[str, Any]]) -> Config:
    """Build a config from a partial dict; missing keys take schema defaults."""
    return Config.from_dict(data or {})
