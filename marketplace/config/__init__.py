"""
Marketplace User Activity Service
Configuration Module
"""
from .settings import ActivitySettings, Settings, get_settings

__all__ = ["ActivitySettings", "Settings", "get_settings"]
