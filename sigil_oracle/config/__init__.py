"""Configuration module -- exports Settings and load_config."""

from sigil_oracle.config.loader import load_config
from sigil_oracle.config.settings import Settings

__all__ = ["Settings", "load_config"]
