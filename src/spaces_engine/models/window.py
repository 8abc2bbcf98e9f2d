"""
Live runtime objects as reported by the browser's window/tab manager.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field

from spaces_engine.models.session import Tab, WindowBounds

WINDOW_ID_NONE = -1


class LiveTab(BaseModel):
    id: int
    window_id: Optional[int] = Field(default=None, alias="windowId")
    index: int = 0
    url: Optional[str] = None
    pending_url: Optional[str] = Field(default=None, alias="pendingUrl")
    status: Optional[str] = None
    title: Optional[str] = None
    fav_icon_url: Optional[str] = Field(default=None, alias="favIconUrl")
    pinned: bool = False
    active: bool = False

    model_config = {"populate_by_name": True}

    @property
    def effective_url(self) -> Optional[str]:
        """The URL the tab is heading to: pendingUrl while loading, url otherwise."""
        if self.status == "loading" and self.pending_url:
            return self.pending_url
        return self.url

    def to_tab(self) -> Tab:
        return Tab(
            url=self.effective_url or "",
            title=self.title,
            fav_icon_url=self.fav_icon_url,
            pinned=self.pinned,
            id=self.id,
        )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class Window(BaseModel):
    id: int
    left: Optional[int] = None
    top: Optional[int] = None
    width: Optional[int] = None
    height: Optional[int] = None
    focused: bool = False
    type: Optional[str] = None
    tabs: list[LiveTab] = Field(default_factory=list)

    @property
    def bounds(self) -> WindowBounds:
        return WindowBounds(left=self.left, top=self.top, width=self.width, height=self.height)

    @property
    def urls(self) -> list[str]:
        return [tab.effective_url or "" for tab in self.tabs]


class Display(BaseModel):
    id: Optional[str] = None
    is_primary: bool = Field(default=False, alias="isPrimary")
    work_area: WindowBounds = Field(alias="workArea")

    model_config = {"populate_by_name": True}
