"""Application settings management.

This package provides:
- UserSettings: User-configurable settings loaded from config.yaml
- SilentModeSettings / SoundSettings: nested sections of UserSettings
"""

from batterywarn.settings.user import SilentModeSettings, SoundSettings, UserSettings

__all__ = ["SilentModeSettings", "SoundSettings", "UserSettings"]
