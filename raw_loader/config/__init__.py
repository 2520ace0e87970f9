"""Configuration management components."""

from .config_manager import ConfigManager, get_config_manager, reset_config_manager
from .defaults import LoaderDefaults

__all__ = ['ConfigManager', 'LoaderDefaults', 'get_config_manager', 'reset_config_manager']
