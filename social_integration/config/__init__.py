"""
Parameter file handling.
"""

from .config_manager import (
    ConfigManager,
    DEFAULT_PARAMETERS,
    DEFAULT_INITIAL_CONDITIONS,
    DEFAULT_RUN_SETTINGS,
)

__all__ = [
    "ConfigManager",
    "DEFAULT_PARAMETERS",
    "DEFAULT_INITIAL_CONDITIONS",
    "DEFAULT_RUN_SETTINGS",
]
