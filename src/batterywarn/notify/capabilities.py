"""Memoized notification-server capability query."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Final, Optional

from batterywarn.errors import ChannelError
from batterywarn.notify.models import CapabilitySnapshot

if TYPE_CHECKING:
    from batterywarn.notify.protocols import NotificationChannel

logger: Final = logging.getLogger(__name__)


class CapabilityCache:
    """Queries the channel's capabilities once and remembers the answer.

    A failed query is cached as "nothing supported": warnings degrade to
    plain notifications without actions or sound.
    """

    def __init__(self, channel: NotificationChannel) -> None:
        self._channel = channel
        self._snapshot: Optional[CapabilitySnapshot] = None
        self._lock = asyncio.Lock()

    @property
    def cached(self) -> Optional[CapabilitySnapshot]:
        """The snapshot if it was already queried, otherwise None."""
        return self._snapshot

    async def get(self) -> CapabilitySnapshot:
        """Return the capability snapshot, querying the channel on first use."""
        if self._snapshot is not None:
            return self._snapshot

        async with self._lock:
            if self._snapshot is None:
                self._snapshot = await self._query()
        return self._snapshot

    async def _query(self) -> CapabilitySnapshot:
        try:
            capabilities = await self._channel.query_capabilities()
        except ChannelError as exc:
            logger.warning("Unable to query notification capabilities: %s", exc)
            return CapabilitySnapshot()

        snapshot = CapabilitySnapshot.from_capabilities(capabilities)
        logger.debug(
            "Notification server capabilities: %s (actions=%s)",
            sorted(capabilities),
            snapshot.actions_supported,
        )
        return snapshot
