"""
Configuration for extid.

Public API:
    - ExtIdConfig: Main configuration model
    - WidthPolicy: Suffix widths per level
    - load_config: Load merged configuration
    - clear_cache: Drop the cached configuration
"""

from .loader import clear_cache, load_config
from .models import ExtIdConfig, WidthPolicy

__all__ = ["ExtIdConfig", "WidthPolicy", "load_config", "clear_cache"]
