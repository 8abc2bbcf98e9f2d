from spaces_engine.models.session import Session, SessionPresence, Space, Tab, WindowBounds
from spaces_engine.models.window import WINDOW_ID_NONE, Display, LiveTab, Window

__all__ = [
    "Session",
    "SessionPresence",
    "Space",
    "Tab",
    "WindowBounds",
    "WINDOW_ID_NONE",
    "Display",
    "LiveTab",
    "Window",
]
