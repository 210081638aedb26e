"""Deployment config file loading (deploy.yml)"""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from hostdeploy.exceptions import ConfigurationError

CONFIG_KEYS = (
    "repo_url",
    "branch",
    "ssh_user",
    "host",
    "ssh_key_path",
    "app_port",
)


def load_config_file(path: Optional[Path]) -> Dict[str, Any]:
    """
    Read deployment parameters from a YAML file.

    The access token is never read from the file; pass it with
    --token or HOSTDEPLOY_TOKEN.

    Raises:
        ConfigurationError: If the file is missing, unparsable or has unknown keys
    """
    if path is None:
        return {}

    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {path}")

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}", str(e))

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")

    unknown = sorted(set(data) - set(CONFIG_KEYS))
    if unknown:
        raise ConfigurationError(
            f"Unknown keys in {path}: {', '.join(unknown)}",
            f"Allowed: {', '.join(CONFIG_KEYS)}",
        )

    return {key: value for key, value in data.items() if value is not None}


def merge_values(*sources: Dict[str, Any]) -> Dict[str, Any]:
    """Merge value dicts; earlier sources win, None and '' never override."""
    merged: Dict[str, Any] = {}
    for source in reversed(sources):
        for key, value in source.items():
            if value is None or value == "":
                continue
            merged[key] = value
    return merged
