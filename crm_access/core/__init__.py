"""Core: config, bootstrap, lifespan and HTTP wiring.

Single place for settings and application bootstrap.
"""

from crm_access.core.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
