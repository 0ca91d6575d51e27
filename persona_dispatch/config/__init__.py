"""
Configuration for the dispatch core
"""

from .settings import Settings, MatchingConfig, LoadingConfig, LoggingConfig, get_settings, load_settings

__all__ = ["Settings", "MatchingConfig", "LoadingConfig", "LoggingConfig", "get_settings", "load_settings"]
