"""YAML configuration loader for the oracle tunables.

Configuration is split by kind:

  1. config/config.yaml  -- static tunables checked into the repo (TTL,
                            audit log size, explanation length, prompt)
  2. Settings            -- secrets and deployment choices from the
                            environment and ``.env`` (see :mod:`.settings`)

``load_config()`` deep-merges the YAML file over :data:`DEFAULTS`, so an
absent or partial file is fine.  Everything environment-driven is read from
:class:`Settings` directly and never copied into this dict.
"""

from __future__ import annotations

import copy
from pathlib import Path

import yaml

DEFAULTS: dict = {
    "oracle": {
        "ttl_hours": 24,
        "audit_log_limit": 100,
    },
    "explanation": {
        "max_chars": 4000,
        "temperature": 0.3,
        "max_tokens": 1500,
        "system_prompt": "",
    },
}


def load_config(path: str = "config/config.yaml") -> dict:
    """Load the YAML tunables, filling missing keys from :data:`DEFAULTS`.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        Fully resolved configuration dictionary.
    """
    config = copy.deepcopy(DEFAULTS)

    config_path = Path(path)
    if config_path.exists():
        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}
        _deep_merge(config, yaml_config)

    return config


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
