"""User-configurable settings loaded from config.yaml."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import ClassVar, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from batterywarn.constants import (
    DEFAULT_BUS_PATH,
    DEFAULT_SOUND_FALLBACK,
    DEFAULT_SOUND_FILE,
    DEFAULT_SOUND_THEME,
    DEFAULT_SOUNDS_DIR,
    UPOWER_DISPLAY_DEVICE_PATH,
)

# Load environment variables from .env file(s)
load_dotenv()


def _interpolate_env(content: str) -> str:
    return re.sub(r"\$\{(\w+)\}", lambda m: os.getenv(m.group(1), ""), content)


class SilentModeSettings(BaseModel):
    """Where and whether to honour the user's silent-mode preference."""

    enabled: bool = Field(True, description="Suppress warning sounds while silent mode is on")
    uid: Optional[int] = Field(None, ge=0, description="User whose preference is read")
    timeout_seconds: float = Field(
        10.0, gt=0, description="Give up resolving silent mode after this many seconds"
    )


class SoundSettings(BaseModel):
    """Warning sound lookup."""

    theme: str = Field(DEFAULT_SOUND_THEME, min_length=1)
    file_name: str = Field(DEFAULT_SOUND_FILE, min_length=1)
    sounds_dir: Path = Field(Path(DEFAULT_SOUNDS_DIR), description="Installed sounds directory")
    fallback: str = Field(
        DEFAULT_SOUND_FALLBACK, description="Fallback file relative to sounds_dir"
    )


class UserSettings(BaseModel):
    """User settings for the warning daemon.

    Every field has a default, so the daemon runs without a config file.
    """

    # Default search paths for configuration
    DEFAULT_CONFIG_PATHS: ClassVar[list[Path]] = [
        Path("config.yaml"),
        Path("~/.config/batterywarn/config.yaml").expanduser(),
        Path("/etc/batterywarn/config.yaml"),
    ]

    app_name: str = Field("batterywarn", min_length=1, description="Name shown by the server")
    silent_mode: SilentModeSettings = Field(default_factory=SilentModeSettings)
    sound: SoundSettings = Field(default_factory=SoundSettings)
    settings_command: list[str] = Field(
        default_factory=lambda: ["gnome-control-center", "power"],
        description="Command run by the 'Battery settings' action",
    )
    bus_path: str = Field(DEFAULT_BUS_PATH, description="Object path of the exported state")
    device_path: str = Field(
        UPOWER_DISPLAY_DEVICE_PATH, description="UPower device to watch"
    )

    # ---- validators ----
    @field_validator("bus_path", "device_path")
    @classmethod
    def validate_object_path(cls, v: str) -> str:
        if not re.fullmatch(r"/|(/[A-Za-z0-9_]+)+", v):
            raise ValueError(f"not a valid D-Bus object path: {v!r}")
        return v

    @classmethod
    def find_config(cls) -> Optional[Path]:
        """Locate a config file from the environment or the default paths.

        Raises:
            FileNotFoundError: If BATTERYWARN_CONFIG names a missing file
        """
        env_path = os.environ.get("BATTERYWARN_CONFIG")
        if env_path:
            path = Path(env_path)
            if not path.exists():
                raise FileNotFoundError(f"Config file from BATTERYWARN_CONFIG not found: {path}")
            return path

        for default_path in cls.DEFAULT_CONFIG_PATHS:
            if default_path.exists():
                return default_path
        return None

    @classmethod
    def load(cls, path: Path | None = None) -> UserSettings:
        """Load configuration from a YAML file.

        Args:
            path: Path to config file (optional, searches default locations if None)

        Returns:
            Validated UserSettings object; defaults when no file is found

        Raises:
            FileNotFoundError: If BATTERYWARN_CONFIG names a missing file
            RuntimeError: If the config file cannot be parsed or is invalid
        """
        if path is None:
            path = cls.find_config()
            if path is None:
                return cls()

        import yaml  # local import to avoid hard dep for callers

        try:
            raw = _interpolate_env(path.read_text())
            data = yaml.safe_load(raw) or {}
        except Exception as exc:  # pragma: no cover
            raise RuntimeError(f"Unable to read config YAML: {exc}") from exc

        try:
            return cls.model_validate(data)
        except ValidationError as err:
            raise RuntimeError(f"Invalid configuration:\n{err}") from err
