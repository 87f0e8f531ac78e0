"""Configuration management for termfolio.

Loads and validates YAML-based configuration with Pydantic models.
Supports environment variable overrides for sensitive values like
the token signing secret.
"""

from termfolio.config.settings import Settings, load_settings

__all__ = ["Settings", "load_settings"]
