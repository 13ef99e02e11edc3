"""Environment settings for the rankvote CLI (RANKVOTE_* variables)."""

from src.settings.app import AppSettings, get_settings


__all__ = ["AppSettings", "get_settings"]
