"""
spaces-engine — named, persistent browser window sessions.

Tracks which browser window belongs to which saved session, serves the
dashboard and popup request protocol, and keeps sessions in step with
window and tab lifecycle events.
"""

from spaces_engine.engine import SpacesEngine
from spaces_engine.dispatcher import NO_RESPONSE, RequestDispatcher
from spaces_engine.routing import EventRouter
from spaces_engine.errors import SpacesError, NotFoundError, ConflictError, InvalidInputError, ConnectionError
from spaces_engine.models.events import Action, RuntimeEvent, BridgeEvent

__version__ = "0.1.0"
__all__ = [
    "SpacesEngine",
    "RequestDispatcher",
    "EventRouter",
    "NO_RESPONSE",
    "SpacesError",
    "NotFoundError",
    "ConflictError",
    "InvalidInputError",
    "ConnectionError",
    "Action",
    "RuntimeEvent",
    "BridgeEvent",
]
