"""
Session models: durable session records and the Space read-model.
"""

from typing import Any, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator


class Tab(BaseModel):
    url: str
    title: Optional[str] = None
    fav_icon_url: Optional[str] = Field(default=None, alias="favIconUrl")
    pinned: Optional[bool] = None
    id: Optional[int] = None

    model_config = {"populate_by_name": True}


class WindowBounds(BaseModel):
    left: Optional[Union[int, float]] = None
    top: Optional[Union[int, float]] = None
    width: Optional[Union[int, float]] = None
    height: Optional[Union[int, float]] = None


class Session(BaseModel):
    """A persisted (or about to be persisted) named group of tabs."""

    id: Optional[int] = None
    name: Optional[str] = None
    window_id: Optional[int] = Field(default=None, alias="windowId")
    tabs: list[Tab] = Field(default_factory=list)
    history: list[Tab] = Field(default_factory=list)
    window_bounds: Optional[WindowBounds] = Field(default=None, alias="windowBounds")
    last_access: Optional[float] = Field(default=None, alias="lastAccess")

    model_config = {"populate_by_name": True}

    @field_validator("window_bounds", mode="before")
    @classmethod
    def _drop_unreadable_bounds(cls, value: Any) -> Any:
        # Geometry written by older clients may be garbage; restore falls back to defaults.
        if value is None or isinstance(value, WindowBounds):
            return value
        try:
            return WindowBounds.model_validate(value)
        except ValidationError:
            return None

    @property
    def urls(self) -> list[str]:
        return [tab.url for tab in self.tabs]

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class Space(BaseModel):
    """Merged view of a session and/or a live window, handed to UI callers."""

    session_id: Optional[int] = Field(default=None, alias="sessionId")
    window_id: Optional[int] = Field(default=None, alias="windowId")
    name: Optional[str] = None
    tabs: list[Tab] = Field(default_factory=list)
    history: Optional[list[Tab]] = None
    last_access: Optional[float] = Field(default=None, alias="lastAccess")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_session(cls, session: Session) -> "Space":
        return cls(
            session_id=session.id,
            window_id=session.window_id,
            name=session.name,
            tabs=[tab.model_copy() for tab in session.tabs],
            history=[tab.model_copy() for tab in session.history],
            last_access=session.last_access,
        )

    def to_wire(self) -> dict[str, Any]:
        """Render for the message protocol, where absent ids and names are `false`."""
        data = self.model_dump(by_alias=True, exclude_none=True)
        for key in ("sessionId", "windowId", "name", "history"):
            data.setdefault(key, False)
        return data


class SessionPresence(BaseModel):
    exists: bool
    is_open: bool = Field(alias="isOpen")
    session_name: Union[str, bool] = Field(default=False, alias="sessionName")

    model_config = {"populate_by_name": True}

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)
