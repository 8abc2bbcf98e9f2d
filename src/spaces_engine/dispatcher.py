"""
Request dispatcher: the action-keyed request/response protocol used by the
dashboard and popup pages.

Every action is registered with a parameter schema: which parameters are
runtime ids to normalise, which are required, and the value answered when
the request cannot be served. Validation runs before any handler code, and
failures never propagate past `dispatch()`.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union

from pydantic import ValidationError

from spaces_engine.backup import import_session_name
from spaces_engine.bounds import compute_bounds, target_work_area
from spaces_engine.errors import ConflictError, InvalidInputError, NotFoundError
from spaces_engine.matcher import SessionMatcher
from spaces_engine.models.envelope import ActionRequest
from spaces_engine.models.events import Action
from spaces_engine.models.session import SessionPresence, Tab
from spaces_engine.models.window import Window
from spaces_engine.runtime.base import WindowManager
from spaces_engine.sessions import SpacesService, window_tabs
from spaces_engine.state import UtilityWindowSlots
from spaces_engine.windows import DashboardWindow, PopupWindow

logger = logging.getLogger(__name__)

SHORTCUTS_URL = "chrome://extensions/configureCommands"


class _NoResponse:
    def __repr__(self) -> str:
        return "NO_RESPONSE"


NO_RESPONSE = _NoResponse()
"""Returned by `dispatch()` when nothing should be sent back to the caller."""

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def clean_parameter(param: Any) -> Union[int, float, bool]:
    """Normalise an id-like parameter.

    Numbers pass through, "true"/"false" become booleans, anything else is
    parsed as a leading base-10 integer. Unparseable input yields NaN.
    """
    if isinstance(param, (bool, int, float)):
        return param
    if param == "true":
        return True
    if param == "false":
        return False
    if isinstance(param, str):
        match = _LEADING_INT.match(param)
        if match:
            return int(match.group(1))
    return math.nan


def is_present(value: Any) -> bool:
    """Truthiness as the protocol understands it: NaN, '', 0 and False are absent."""
    if value is None or value is False:
        return False
    if isinstance(value, float) and math.isnan(value):
        return False
    if isinstance(value, (int, float, str)) and not value:
        return False
    return True


def _flag(value: Any) -> bool:
    return value is not None and is_present(clean_parameter(value))


Handler = Callable[["RequestDispatcher", dict[str, Any], Any], Awaitable[Any]]


@dataclass(frozen=True)
class ActionSpec:
    name: str
    handler: Handler
    ids: tuple[str, ...] = ()
    # Each entry is a parameter name, or a tuple of names of which one is enough.
    required: tuple[Union[str, tuple[str, ...]], ...] = ()
    failure: Any = False

    def clean(self, params: dict[str, Any]) -> dict[str, Any]:
        cleaned = dict(params)
        for key in self.ids:
            if key in cleaned:
                cleaned[key] = clean_parameter(cleaned[key])
        return cleaned

    def missing(self, params: dict[str, Any]) -> list[str]:
        absent = []
        for requirement in self.required:
            names = (requirement,) if isinstance(requirement, str) else requirement
            if not any(is_present(params.get(name)) for name in names):
                absent.append("|".join(names))
        return absent


_REGISTRY: dict[str, ActionSpec] = {}


def action(name: str, *, ids: tuple[str, ...] = (), required: tuple = (), failure: Any = False):
    def decorator(fn: Handler) -> Handler:
        _REGISTRY[name] = ActionSpec(name, fn, ids, required, failure)
        return fn
    return decorator


def registered_actions() -> dict[str, ActionSpec]:
    return dict(_REGISTRY)


class RequestDispatcher:
    def __init__(
        self,
        windows: WindowManager,
        slots: UtilityWindowSlots,
        service: SpacesService,
        matcher: SessionMatcher,
        dashboard: DashboardWindow,
        popup: PopupWindow,
        on_change: Optional[Callable[[str], None]] = None,
    ):
        self._windows = windows
        self._slots = slots
        self._service = service
        self._store = service.store
        self._matcher = matcher
        self._dashboard = dashboard
        self._popup = popup
        self._on_change = on_change

    async def dispatch(self, request: Any, sender: Any = None) -> Any:
        """Serve one request. Returns the response value or NO_RESPONSE."""
        try:
            parsed = ActionRequest.model_validate(request)
        except ValidationError:
            logger.warning("Dropping malformed request: %r", request)
            return NO_RESPONSE

        spec = _REGISTRY.get(parsed.action)
        if spec is None:
            logger.debug("Ignoring unknown action %r", parsed.action)
            return NO_RESPONSE

        params = spec.clean(parsed.params)
        missing = spec.missing(params)
        if missing:
            logger.debug("%s: missing %s", spec.name, ", ".join(missing))
            return spec.failure

        try:
            return await spec.handler(self, params, sender)
        except (NotFoundError, ConflictError, InvalidInputError) as e:
            logger.warning("%s: %s", spec.name, e)
            return spec.failure
        except Exception:
            logger.exception("Error processing %s", spec.name)
            return False

    def _changed(self, source: str) -> None:
        if self._on_change is not None:
            self._on_change(source)

    # -- space queries -----------------------------------------------------

    @action(Action.REQUEST_SESSION_PRESENCE)
    async def _session_presence(self, params: dict[str, Any], sender: Any) -> dict[str, Any]:
        name = params.get("sessionName")
        session = await self._store.fetch_session_by_name(name if isinstance(name, str) else None)
        return SessionPresence(
            exists=session is not None,
            is_open=session is not None and session.window_id is not None,
            session_name=session.name if session is not None and session.name else False,
        ).to_wire()

    @action(Action.REQUEST_SPACE_FROM_WINDOW_ID, ids=("windowId", "matchByTabs"), required=("windowId",))
    async def _space_from_window_id(self, params: dict[str, Any], sender: Any) -> Any:
        space = await self._matcher.resolve_space(params["windowId"], match_by_tabs=params.get("matchByTabs") is True)
        return space.to_wire() if space else False

    @action(Action.REQUEST_CURRENT_SPACE)
    async def _current_space(self, params: dict[str, Any], sender: Any) -> Any:
        window = await self._windows.get_current_window()
        if window is None:
            return False
        space = await self._matcher.resolve_space(window.id)
        return space.to_wire() if space else False

    @action(Action.REQUEST_SPACE_DETAIL, ids=("windowId", "sessionId"), required=(("windowId", "sessionId"),))
    async def _space_detail(self, params: dict[str, Any], sender: Any) -> Any:
        window_id = params.get("windowId")
        if is_present(window_id):
            if self._slots.is_internal(window_id):
                return False
            space = await self._matcher.resolve_space(window_id)
            return space.to_wire() if space else False
        space = await self._matcher.space_from_session_id(params["sessionId"])
        return space.to_wire() if space else None

    @action(Action.REQUEST_ALL_SPACES)
    async def _all_spaces(self, params: dict[str, Any], sender: Any) -> list[dict[str, Any]]:
        return [space.to_wire() for space in await self.all_spaces()]

    async def all_spaces(self):
        return await self._service.all_spaces(exclude=(self._slots.open_window_id, self._slots.popup_window_id))

    @action(Action.REQUEST_TAB_DETAIL, ids=("tabId",), required=("tabId",), failure=None)
    async def _tab_detail(self, params: dict[str, Any], sender: Any) -> Any:
        try:
            tab = await self._windows.get_tab(params["tabId"])
        except NotFoundError:
            # The popup asked about a tab that is gone; it has nothing left to show.
            await self._popup.close_and_forget()
            return None
        return tab.to_wire()

    @action(Action.GENERATE_POPUP_PARAMS, required=("popupAction",), failure="")
    async def _popup_params(self, params: dict[str, Any], sender: Any) -> str:
        return await self._popup.params(params["popupAction"], params.get("tabUrl"))

    # -- loading -----------------------------------------------------------

    @action(Action.LOAD_SESSION, ids=("sessionId",), required=("sessionId",), failure=NO_RESPONSE)
    async def _load_session_action(self, params: dict[str, Any], sender: Any) -> bool:
        await self.load_session(params["sessionId"], params.get("tabUrl"))
        return True

    @action(Action.LOAD_WINDOW, ids=("windowId",), required=("windowId",), failure=NO_RESPONSE)
    async def _load_window_action(self, params: dict[str, Any], sender: Any) -> bool:
        await self.load_window(params["windowId"], params.get("tabUrl"))
        return True

    @action(Action.LOAD_TAB_IN_SESSION, ids=("sessionId",), required=("sessionId", "tabUrl"), failure=NO_RESPONSE)
    async def _load_tab_in_session(self, params: dict[str, Any], sender: Any) -> bool:
        await self.load_session(params["sessionId"], params["tabUrl"])
        return True

    @action(Action.LOAD_TAB_IN_WINDOW, ids=("windowId",), required=("windowId", "tabUrl"), failure=NO_RESPONSE)
    async def _load_tab_in_window(self, params: dict[str, Any], sender: Any) -> bool:
        await self.load_window(params["windowId"], params["tabUrl"])
        return True

    @action(Action.SWITCH_TO_SPACE, ids=("windowId", "sessionId"))
    async def _switch_to_space(self, params: dict[str, Any], sender: Any) -> bool:
        if is_present(params.get("windowId")):
            await self.load_window(params["windowId"])
        elif is_present(params.get("sessionId")):
            await self.load_session(params["sessionId"])
        return True

    async def load_session(self, session_id: int, tab_url: Optional[str] = None) -> None:
        session = await self._store.fetch_session_by_id(session_id)
        if session is None:
            raise NotFoundError(f"No session found with id {session_id}")

        if session.window_id is not None:
            try:
                await self.load_window(session.window_id, tab_url)
                return
            except NotFoundError:
                logger.info("Session %s was bound to missing window %s", session.id, session.window_id)
                await self._service.handle_window_removed(session.window_id)

        geometry = compute_bounds(await target_work_area(self._windows), session.window_bounds)
        window = await self._windows.create_window(
            session.urls,
            left=geometry.left,
            top=geometry.top,
            width=geometry.width,
            height=geometry.height,
        )
        await self._service.match_session_to_window(session, window)

        for saved in session.tabs:
            if not saved.pinned:
                continue
            opened = next((tab for tab in window.tabs if tab.effective_url == saved.url), None)
            if opened is not None:
                await self._windows.update_tab(opened.id, pinned=True)

        if tab_url:
            await self._focus_or_load_tab(window, tab_url)

    async def load_window(self, window_id: int, tab_url: Optional[str] = None) -> None:
        await self._windows.update_window(window_id, focused=True)
        if tab_url:
            window = await self._windows.get_window(window_id, populate=True)
            await self._focus_or_load_tab(window, tab_url)

    async def _focus_or_load_tab(self, window: Window, tab_url: str) -> None:
        for tab in window.tabs:
            if tab.effective_url == tab_url:
                await self._windows.update_tab(tab.id, active=True)
                return
        await self._windows.create_tab(tab_url, window_id=window.id, active=True)

    # -- session mutations -------------------------------------------------

    @action(Action.SAVE_NEW_SESSION, ids=("windowId",), required=("windowId", "sessionName"))
    async def _save_new_session(self, params: dict[str, Any], sender: Any) -> dict[str, Any]:
        window = await self._windows.get_window(params["windowId"], populate=True)
        session = await self._service.save_new_session(
            params["sessionName"],
            window_tabs(window),
            window.id,
            window.bounds,
            overwrite=_flag(params.get("deleteOld")),
        )
        self._changed(Action.SAVE_NEW_SESSION)
        return session.to_wire()

    @action(Action.IMPORT_NEW_SESSION, required=("urlList",), failure=None)
    async def _import_new_session(self, params: dict[str, Any], sender: Any) -> dict[str, Any]:
        url_list = params["urlList"]
        if not isinstance(url_list, list):
            raise InvalidInputError("urlList must be a list of URLs")
        taken = [session.name for session in await self._store.fetch_all_sessions() if session.name]
        session = await self._service.save_new_session(
            import_session_name(taken), [Tab(url=str(url)) for url in url_list],
        )
        self._changed(Action.IMPORT_NEW_SESSION)
        return session.to_wire()

    @action(Action.RESTORE_FROM_BACKUP, required=("space",), failure=None)
    async def _restore_from_backup(self, params: dict[str, Any], sender: Any) -> dict[str, Any]:
        space = params["space"]
        if not isinstance(space, dict):
            raise InvalidInputError("space must be an object")
        try:
            tabs = [Tab.model_validate(tab) for tab in space.get("tabs") or []]
        except ValidationError as e:
            raise InvalidInputError(f"Malformed tabs in backup: {e}")
        session = await self._service.save_new_session(
            space.get("name") or None, tabs, overwrite=_flag(params.get("deleteOld")),
        )
        self._changed(Action.RESTORE_FROM_BACKUP)
        return session.to_wire()

    @action(Action.DELETE_SESSION, ids=("sessionId",), required=("sessionId",))
    async def _delete_session(self, params: dict[str, Any], sender: Any) -> bool:
        deleted = await self._service.delete_session(params["sessionId"])
        if deleted:
            self._changed(Action.DELETE_SESSION)
        else:
            logger.error("deleteSession: no session found with id %s", params["sessionId"])
        return deleted

    @action(Action.UPDATE_SESSION_NAME, ids=("sessionId",), required=("sessionId", "sessionName"))
    async def _update_session_name(self, params: dict[str, Any], sender: Any) -> dict[str, Any]:
        session = await self._service.update_session_name(
            params["sessionId"], params["sessionName"], overwrite=_flag(params.get("deleteOld")),
        )
        self._changed(Action.UPDATE_SESSION_NAME)
        return session.to_wire()

    @action(Action.CLOSE_WINDOW, ids=("windowId",), required=("windowId",))
    async def _close_window(self, params: dict[str, Any], sender: Any) -> bool:
        window = await self._windows.get_window(params["windowId"])
        # The removed event can outrun a late bounds update; record geometry first.
        await self._service.capture_window_bounds(window.id, window.bounds)
        await self._windows.remove_window(window.id)
        return True

    # -- popup link and tab actions ----------------------------------------

    @action(Action.ADD_LINK_TO_NEW_SESSION, required=("sessionName", "url"), failure=None)
    async def _add_link_to_new_session(self, params: dict[str, Any], sender: Any) -> dict[str, Any]:
        try:
            session = await self._service.save_new_session(params["sessionName"], [Tab(url=params["url"])])
            self._changed(Action.ADD_LINK_TO_NEW_SESSION)
            return session.to_wire()
        finally:
            await self._popup.close_and_forget()

    @action(Action.MOVE_TAB_TO_NEW_SESSION, ids=("tabId",), required=("sessionName", "tabId"), failure=None)
    async def _move_tab_to_new_session(self, params: dict[str, Any], sender: Any) -> dict[str, Any]:
        try:
            tab = await self._windows.get_tab(params["tabId"])
            moved = tab.to_tab().model_copy(update={"id": None})
            session = await self._service.save_new_session(params["sessionName"], [moved])
            await self._windows.remove_tab(tab.id)
            self._changed(Action.MOVE_TAB_TO_NEW_SESSION)
            return session.to_wire()
        finally:
            await self._popup.close_and_forget()

    @action(Action.ADD_LINK_TO_SESSION, ids=("sessionId",), required=("sessionId", "url"))
    async def _add_link_to_session(self, params: dict[str, Any], sender: Any) -> bool:
        try:
            session = await self._store.fetch_session_by_id(params["sessionId"])
            if session is None:
                return False
            if session.window_id is not None:
                await self._add_link_to_window(params["url"], session.window_id)
            else:
                await self._service.update_session_tabs(session.id, session.tabs + [Tab(url=params["url"])])
            self._changed(Action.ADD_LINK_TO_SESSION)
            return True
        finally:
            await self._popup.close_and_forget()

    @action(Action.MOVE_TAB_TO_SESSION, ids=("sessionId", "tabId"), required=("sessionId", "tabId"))
    async def _move_tab_to_session(self, params: dict[str, Any], sender: Any) -> bool:
        try:
            tab = await self._windows.get_tab(params["tabId"])
            session = await self._store.fetch_session_by_id(params["sessionId"])
            if session is None:
                return False
            if session.window_id is not None:
                await self._move_tab_to_window(tab.id, tab.window_id, session.window_id)
            else:
                await self._windows.remove_tab(tab.id)
                moved = tab.to_tab().model_copy(update={"id": None})
                await self._service.update_session_tabs(session.id, session.tabs + [moved])
            self._changed(Action.MOVE_TAB_TO_SESSION)
            return True
        finally:
            await self._popup.close_and_forget()

    @action(Action.ADD_LINK_TO_WINDOW, ids=("windowId",), required=("windowId", "url"))
    async def _add_link_to_window_action(self, params: dict[str, Any], sender: Any) -> bool:
        try:
            await self._add_link_to_window(params["url"], params["windowId"])
            self._changed(Action.ADD_LINK_TO_WINDOW)
            return True
        finally:
            await self._popup.close_and_forget()

    @action(Action.MOVE_TAB_TO_WINDOW, ids=("windowId", "tabId"), required=("windowId", "tabId"))
    async def _move_tab_to_window_action(self, params: dict[str, Any], sender: Any) -> bool:
        try:
            tab = await self._windows.get_tab(params["tabId"])
            await self._move_tab_to_window(tab.id, tab.window_id, params["windowId"])
            self._changed(Action.MOVE_TAB_TO_WINDOW)
            return True
        finally:
            await self._popup.close_and_forget()

    async def _add_link_to_window(self, url: str, window_id: int) -> None:
        await self._windows.create_tab(url, window_id=window_id, active=False)
        # Programmatic tab changes do not always raise tab events; sync by hand.
        await self._service.sync_window(window_id)

    async def _move_tab_to_window(self, tab_id: int, source_window_id: Optional[int], window_id: int) -> None:
        await self._windows.move_tab(tab_id, window_id, index=-1)
        if source_window_id is not None:
            await self._service.sync_window(source_window_id)
        await self._service.sync_window(window_id)

    # -- utility windows ---------------------------------------------------

    @action(Action.REQUEST_SHOW_SPACES, ids=("windowId",), failure=NO_RESPONSE)
    async def _show_spaces(self, params: dict[str, Any], sender: Any) -> Any:
        window_id = params.get("windowId")
        if is_present(window_id):
            await self._dashboard.show(window_id, edit_mode=_flag(params.get("edit")))
        else:
            await self._dashboard.show()
        return NO_RESPONSE

    @action(Action.REQUEST_SHOW_SWITCHER, failure=NO_RESPONSE)
    async def _show_switcher(self, params: dict[str, Any], sender: Any) -> Any:
        await self._popup.show("switch")
        return NO_RESPONSE

    @action(Action.REQUEST_SHOW_MOVER, failure=NO_RESPONSE)
    async def _show_mover(self, params: dict[str, Any], sender: Any) -> Any:
        await self._popup.show("move")
        return NO_RESPONSE

    @action(Action.REQUEST_SHOW_KEYBOARD_SHORTCUTS, failure=NO_RESPONSE)
    async def _show_keyboard_shortcuts(self, params: dict[str, Any], sender: Any) -> Any:
        await self._windows.create_tab(SHORTCUTS_URL)
        return NO_RESPONSE

    @action(Action.REQUEST_CLOSE, failure=NO_RESPONSE)
    async def _request_close(self, params: dict[str, Any], sender: Any) -> Any:
        await self._popup.close_and_forget()
        return NO_RESPONSE
