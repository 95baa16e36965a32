"""Public interface for bbimport configuration settings."""

from .config import ENV_VAR_NAME, PROJECT_ROOT, Settings, get_settings, reload_settings

__all__ = [
    "Settings",
    "get_settings",
    "reload_settings",
    "PROJECT_ROOT",
    "ENV_VAR_NAME",
]
