"""Configuration module for filerouter."""

from filerouter.config.loader import get_config_path, load_config, save_config
from filerouter.config.schema import Config

__all__ = ["Config", "load_config", "save_config", "get_config_path"]
