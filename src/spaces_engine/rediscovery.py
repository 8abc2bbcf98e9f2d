"""
Identifier rediscovery for the utility windows.

Window ids are reassigned when the browser restarts, so a cached id is only a
hint: it is verified first, and if it is stale the windows are searched for
one whose first tab shows the utility page.
"""

import logging
from typing import Optional

from spaces_engine.errors import NotFoundError
from spaces_engine.models.window import Window
from spaces_engine.runtime.base import WindowManager
from spaces_engine.state import OPEN_WINDOW_KEY, POPUP_WINDOW_KEY, UtilityWindowSlots
from spaces_engine.stores.base import ScratchStore

logger = logging.getLogger(__name__)

DASHBOARD_PAGE = "spaces.html"
POPUP_PAGE = "popup.html"


def _shows(window: Window, resource_path: str) -> bool:
    return bool(window.tabs) and (window.tabs[0].url or "").startswith(resource_path)


async def rediscover(
    windows: WindowManager,
    scratch: ScratchStore,
    slot_key: str,
    resource_path: str,
) -> Optional[int]:
    """Locate the live window for `slot_key`. Never creates a window."""
    cached = await scratch.get(slot_key)
    if cached:
        try:
            window = await windows.get_window(cached, populate=True)
        except NotFoundError:
            window = None
        if window is not None and _shows(window, resource_path):
            return window.id
        # Ids are reused after a restart; the cached one may now be a user window.
        logger.debug("Cached %s=%s is stale", slot_key, cached)
        await scratch.remove(slot_key)

    for window in await windows.get_all_windows(populate=True):
        if _shows(window, resource_path):
            await scratch.set(slot_key, window.id)
            return window.id
    return None


async def rediscover_all(windows: WindowManager, slots: UtilityWindowSlots) -> None:
    for key, page in ((OPEN_WINDOW_KEY, DASHBOARD_PAGE), (POPUP_WINDOW_KEY, POPUP_PAGE)):
        found = await rediscover(windows, slots.scratch, key, windows.resource_url(page))
        await slots.assign(key, found)
        if found is not None:
            logger.info("Rediscovered %s as window %s", key, found)
