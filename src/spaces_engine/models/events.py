"""
Event and action names used on the bridge and in the request protocol.
"""


class Action:
    """Request tags accepted by the dispatcher."""
    REQUEST_SESSION_PRESENCE = "requestSessionPresence"
    REQUEST_SPACE_FROM_WINDOW_ID = "requestSpaceFromWindowId"
    REQUEST_CURRENT_SPACE = "requestCurrentSpace"
    GENERATE_POPUP_PARAMS = "generatePopupParams"
    LOAD_SESSION = "loadSession"
    LOAD_WINDOW = "loadWindow"
    LOAD_TAB_IN_SESSION = "loadTabInSession"
    LOAD_TAB_IN_WINDOW = "loadTabInWindow"
    SAVE_NEW_SESSION = "saveNewSession"
    IMPORT_NEW_SESSION = "importNewSession"
    RESTORE_FROM_BACKUP = "restoreFromBackup"
    DELETE_SESSION = "deleteSession"
    CLOSE_WINDOW = "closeWindow"
    UPDATE_SESSION_NAME = "updateSessionName"
    REQUEST_SPACE_DETAIL = "requestSpaceDetail"
    REQUEST_ALL_SPACES = "requestAllSpaces"
    REQUEST_TAB_DETAIL = "requestTabDetail"
    REQUEST_SHOW_SPACES = "requestShowSpaces"
    REQUEST_SHOW_SWITCHER = "requestShowSwitcher"
    REQUEST_SHOW_MOVER = "requestShowMover"
    REQUEST_SHOW_KEYBOARD_SHORTCUTS = "requestShowKeyboardShortcuts"
    REQUEST_CLOSE = "requestClose"
    SWITCH_TO_SPACE = "switchToSpace"
    ADD_LINK_TO_NEW_SESSION = "addLinkToNewSession"
    MOVE_TAB_TO_NEW_SESSION = "moveTabToNewSession"
    ADD_LINK_TO_SESSION = "addLinkToSession"
    MOVE_TAB_TO_SESSION = "moveTabToSession"
    ADD_LINK_TO_WINDOW = "addLinkToWindow"
    MOVE_TAB_TO_WINDOW = "moveTabToWindow"


class RuntimeEvent:
    """Lifecycle events relayed from the browser."""
    TAB_CREATED = "tabs.onCreated"
    TAB_REMOVED = "tabs.onRemoved"
    TAB_MOVED = "tabs.onMoved"
    TAB_UPDATED = "tabs.onUpdated"
    WINDOW_CREATED = "windows.onCreated"
    WINDOW_REMOVED = "windows.onRemoved"
    WINDOW_FOCUS_CHANGED = "windows.onFocusChanged"
    WINDOW_BOUNDS_CHANGED = "windows.onBoundsChanged"
    STARTUP = "runtime.onStartup"
    INSTALLED = "runtime.onInstalled"
    COMMAND = "commands.onCommand"
    CONTEXT_MENU_CLICKED = "contextMenus.onClicked"


class BridgeEvent:
    """Socket.IO event names exchanged with the browser bridge."""
    READY = "ready"
    LIFECYCLE = "runtime:event"
    REQUEST = "runtime:request"
    RESPONSE = "runtime:response"
    PUSH = "runtime:push"
    CALL = "bridge:call"
    RESULT = "bridge:result"


class PushEvent:
    UPDATE_SPACES = "updateSpaces"


class Command:
    MOVE = "spaces-move"
    SWITCH = "spaces-switch"
    ADD_LINK_MENU = "spaces-add-link"
