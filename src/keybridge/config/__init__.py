"""Configuration management for keybridge.

Loads and validates YAML-based configuration with Pydantic models.
Supports environment variable overrides with the KEYBRIDGE_ prefix.
"""

from keybridge.config.settings import Settings, load_settings

__all__ = ["Settings", "load_settings"]
