"""Configuration module for loading and managing application settings"""
import os
from typing import Dict, Any, Optional
from .lib.load_settings_conf import load_settings_conf, validate_settings, SettingsError, DEFAULTS

__all__ = ['load_settings', 'validate_settings', 'SettingsError', 'DEFAULTS']

def load_settings(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from file and environment.

    Args:
        config_path: Optional path to settings.conf or its directory. If not provided,
                    SKILLSWAP_CONFIG is used, then settings.conf in the
                    current directory.

    Returns:
        Dictionary of validated settings

    Raises:
        SettingsError: If the configuration is invalid
    """
    try:
        return load_settings_conf(config_path or os.environ.get("SKILLSWAP_CONFIG") or ".")
    except SettingsError as e:
        # Re-raise the error but provide more context
        raise SettingsError(
            f"Configuration Error\n"
            "=================\n\n"
            f"{str(e)}\n\n"
            "Please ensure settings.conf is properly configured.\n"
            "Run `python -m config` to write an example file."
        ) from e
