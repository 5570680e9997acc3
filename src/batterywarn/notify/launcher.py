"""Launches the system battery settings from a notification action."""

from __future__ import annotations

import logging
import subprocess
import threading
from typing import Final, Optional, Protocol, runtime_checkable

logger: Final = logging.getLogger(__name__)


@runtime_checkable
class SettingsLauncher(Protocol):
    """Protocol for opening the battery settings page."""

    def launch(self) -> None: ...


class CommandSettingsLauncher:
    """Opens the settings page by spawning a command."""

    def __init__(self, command: list[str]) -> None:
        self.command = command
        self.process: Optional[subprocess.Popen[bytes]] = None
        self.reaper: Optional[threading.Thread] = None

    def launch(self) -> None:
        """Spawn the configured command without waiting for it.

        The child is reaped from a background thread once it exits.
        """
        if not self.command:
            logger.debug("No settings command configured")
            return

        try:
            process = subprocess.Popen(
                self.command,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as exc:
            logger.warning("Unable to launch battery settings: %s", exc)
            return

        logger.info("Launched battery settings: %s", " ".join(self.command))
        self.process = process
        self.reaper = threading.Thread(
            target=self._reap, args=(process,), name="settings-reaper", daemon=True
        )
        self.reaper.start()

    def _reap(self, process: subprocess.Popen[bytes]) -> None:
        returncode = process.wait()
        logger.debug("Battery settings exited with status %s", returncode)
