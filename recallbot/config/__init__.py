"""Configuration module for recallbot."""

from recallbot.config.loader import get_config_path, load_config, save_config
from recallbot.config.schema import AntiDeleteConfig, Config

__all__ = ["AntiDeleteConfig", "Config", "get_config_path", "load_config", "save_config"]
