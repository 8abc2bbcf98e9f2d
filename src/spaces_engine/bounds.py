"""
Window geometry: restoring stored session bounds and placing utility windows.

`compute_bounds`, `dashboard_bounds` and `popup_bounds` are pure functions;
only `target_work_area` talks to the window manager.
"""

import logging
from typing import Any, Mapping, Optional, Union

from spaces_engine.errors import SpacesError
from spaces_engine.models.session import WindowBounds
from spaces_engine.runtime.base import WindowManager

logger = logging.getLogger(__name__)

FALLBACK_INSET = 100
DASHBOARD_MAX_WIDTH = 1000
DASHBOARD_HEIGHT_RATIO = 0.9
POPUP_WIDTH = 310
POPUP_HEIGHT = 450

_FIELDS = ("left", "top", "width", "height")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _as_mapping(bounds: Union[WindowBounds, Mapping[str, Any], None]) -> Optional[Mapping[str, Any]]:
    if bounds is None:
        return None
    if isinstance(bounds, WindowBounds):
        return bounds.model_dump()
    return bounds


def compute_bounds(
    work_area: Union[WindowBounds, Mapping[str, Any]],
    stored: Union[WindowBounds, Mapping[str, Any], None],
) -> WindowBounds:
    """Bounds for restoring a session window onto `work_area`.

    Stored bounds are used verbatim only when all four fields are numbers and
    the rectangle lies fully inside the work area. Anything else places the
    window at the work area's top-left, inset by FALLBACK_INSET.
    """
    area = _as_mapping(work_area)
    candidate = _as_mapping(stored)

    valid = candidate is not None and all(_is_number(candidate.get(f)) for f in _FIELDS)
    if valid:
        valid = (
            candidate["left"] >= area["left"]
            and candidate["top"] >= area["top"]
            and candidate["left"] + candidate["width"] <= area["left"] + area["width"]
            and candidate["top"] + candidate["height"] <= area["top"] + area["height"]
        )
    if not valid:
        return WindowBounds(
            left=area["left"],
            top=area["top"],
            width=area["width"] - FALLBACK_INSET,
            height=area["height"] - FALLBACK_INSET,
        )
    return WindowBounds(**{f: candidate[f] for f in _FIELDS})


def dashboard_bounds(work_area: WindowBounds) -> WindowBounds:
    """Left-hand side of the display, 90% of its height."""
    return WindowBounds(
        left=work_area.left,
        top=work_area.top,
        width=min(work_area.width - FALLBACK_INSET, DASHBOARD_MAX_WIDTH),
        height=round(work_area.height * DASHBOARD_HEIGHT_RATIO),
    )


def popup_bounds(work_area: WindowBounds) -> WindowBounds:
    """Fixed size, anchored to the display's bottom-right corner."""
    return WindowBounds(
        left=round(work_area.left + work_area.width - POPUP_WIDTH),
        top=round(work_area.top + work_area.height - POPUP_HEIGHT),
        width=POPUP_WIDTH,
        height=POPUP_HEIGHT,
    )


def _contains(area: WindowBounds, x: float, y: float) -> bool:
    return area.left <= x < area.left + area.width and area.top <= y < area.top + area.height


async def target_work_area(windows: WindowManager) -> WindowBounds:
    """Work area of the display holding the focused window's center, else the primary display."""
    displays = await windows.get_displays()
    try:
        current = await windows.get_current_window()
    except SpacesError as e:
        logger.debug("No current window: %s", e)
        current = None

    target = next((d for d in displays if d.is_primary), displays[0] if displays else None)
    if target is None:
        raise SpacesError("no_display", "Window manager reported no displays")

    if current is not None and None not in (current.left, current.top, current.width, current.height):
        center_x = current.left + current.width / 2
        center_y = current.top + current.height / 2
        active = next((d for d in displays if _contains(d.work_area, center_x, center_y)), None)
        if active is not None:
            target = active
    return target.work_area
