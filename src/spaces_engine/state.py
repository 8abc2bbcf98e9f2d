"""
Utility window slots: the dashboard and popup window ids owned by one engine.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from spaces_engine.stores.base import ScratchStore

logger = logging.getLogger(__name__)

OPEN_WINDOW_KEY = "openWindowId"
POPUP_WINDOW_KEY = "popupWindowId"
SLOT_KEYS = (OPEN_WINDOW_KEY, POPUP_WINDOW_KEY)


class UtilityWindowSlots:
    """Two independent slots, each unset (None) or a live window id.

    Every transition is written through to the scratch store under the slot's
    key so a restarted process can attempt rediscovery.
    """

    def __init__(self, scratch: ScratchStore):
        self._scratch = scratch
        self._ids: dict[str, Optional[int]] = {key: None for key in SLOT_KEYS}
        self._creating = 0
        self._settled = asyncio.Event()
        self._settled.set()

    @property
    def scratch(self) -> ScratchStore:
        return self._scratch

    @property
    def open_window_id(self) -> Optional[int]:
        return self._ids[OPEN_WINDOW_KEY]

    @property
    def popup_window_id(self) -> Optional[int]:
        return self._ids[POPUP_WINDOW_KEY]

    def get(self, key: str) -> Optional[int]:
        return self._ids[key]

    async def assign(self, key: str, window_id: Optional[int]) -> None:
        self._ids[key] = window_id
        if window_id is None:
            await self._scratch.remove(key)
        else:
            await self._scratch.set(key, window_id)

    async def clear(self, key: str) -> None:
        await self.assign(key, None)

    def is_internal(self, window_id: Optional[int]) -> bool:
        return window_id is not None and window_id in self._ids.values()

    async def release(self, window_id: int) -> Optional[str]:
        """Clear whichever slot holds `window_id`; returns its key."""
        for key, held in self._ids.items():
            if held is not None and held == window_id:
                logger.debug("Utility window %s (%s) closed", window_id, key)
                await self.clear(key)
                return key
        return None

    @asynccontextmanager
    async def creating(self) -> AsyncIterator[None]:
        """Held while a utility window is created and its id not yet recorded."""
        self._creating += 1
        self._settled.clear()
        try:
            yield
        finally:
            self._creating -= 1
            if self._creating == 0:
                self._settled.set()

    async def settled(self) -> None:
        await self._settled.wait()
