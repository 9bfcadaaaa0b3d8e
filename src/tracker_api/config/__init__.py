"""
Configuration management for the Learning Tracker API.

Contains Pydantic settings shared by the combined, api-only and ui-proxy
deployment modes.
"""

from .settings import Settings, get_settings

__all__ = ['Settings', 'get_settings']
