"""Lookup of the low-battery warning sound."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Final, Optional, Protocol, runtime_checkable

from batterywarn.constants import (
    DEFAULT_SOUND_FALLBACK,
    DEFAULT_SOUND_FILE,
    DEFAULT_SOUND_THEME,
    DEFAULT_SOUNDS_DIR,
)

logger: Final = logging.getLogger(__name__)


@runtime_checkable
class SoundResolver(Protocol):
    """Protocol for anything that can produce the warning sound's URI."""

    def sound_uri(self) -> str:
        """Return a ``file://`` URI for the warning sound."""
        ...


class SoundLocator:
    """Finds the warning sound in the installed sound themes.

    The theme directory is searched under every XDG data directory; when
    nothing matches, a fixed file under ``sounds_dir`` is used instead.
    """

    def __init__(
        self,
        theme: str = DEFAULT_SOUND_THEME,
        file_name: str = DEFAULT_SOUND_FILE,
        sounds_dir: str | Path = DEFAULT_SOUNDS_DIR,
        fallback: str = DEFAULT_SOUND_FALLBACK,
        data_dirs: Optional[list[Path]] = None,
    ) -> None:
        """Initialize the locator.

        Args:
            theme: Sound theme directory name (e.g. ``freedesktop``)
            file_name: Sound file to look for inside the theme
            sounds_dir: Installed sounds directory used for the fallback
            fallback: Path of the fallback file, relative to ``sounds_dir``
            data_dirs: Directories to search; defaults to the XDG data dirs
        """
        self.theme = theme
        self.file_name = file_name
        self.sounds_dir = Path(sounds_dir)
        self.fallback = fallback
        self.data_dirs = data_dirs if data_dirs is not None else self._xdg_data_dirs()

    @staticmethod
    def _xdg_data_dirs() -> list[Path]:
        home = os.environ.get("XDG_DATA_HOME") or str(Path("~/.local/share").expanduser())
        system = os.environ.get("XDG_DATA_DIRS") or "/usr/local/share:/usr/share"
        return [Path(home)] + [Path(d) for d in system.split(":") if d]

    @property
    def fallback_path(self) -> Path:
        return self.sounds_dir / self.fallback

    def find(self) -> Optional[Path]:
        """Search the theme for the configured sound file.

        Returns:
            Path of the first match, or None if it is not installed
        """
        for data_dir in self.data_dirs:
            theme_dir = data_dir / "sounds" / self.theme
            try:
                if not theme_dir.is_dir():
                    continue
                for candidate in sorted(theme_dir.rglob(self.file_name)):
                    if candidate.is_file():
                        return candidate
            except OSError as exc:
                logger.debug("Skipping sound dir %s: %s", theme_dir, exc)
        return None

    def sound_uri(self) -> str:
        path = self.find()
        if path is None:
            logger.debug(
                "Sound %s not found in theme %s; using %s",
                self.file_name,
                self.theme,
                self.fallback_path,
            )
            path = self.fallback_path
        return path.absolute().as_uri()
