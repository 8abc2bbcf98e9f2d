"""
Bridge envelope, action request and lifecycle event models.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class UserSource(BaseModel):
    role: str  # "engine" | "bridge" | "ui"
    client_id: Optional[str] = None
    version: Optional[str] = None


class MessageMetadata(BaseModel):
    event_id: str
    request_id: Optional[str] = None
    timestamp: str
    source: UserSource


class MessagePayload(BaseModel):
    method: Optional[str] = None
    data: Optional[Any] = None
    error: Optional[dict[str, Any]] = None


class MessageEnvelope(BaseModel):
    metadata: MessageMetadata
    type: str
    payload: MessagePayload


class ActionRequest(BaseModel):
    """A tagged UI request: `{action: <name>, ...params}`."""

    action: str
    model_config = {"extra": "allow"}

    @property
    def params(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


class LifecycleEvent(BaseModel):
    """One browser lifecycle notification, queued in delivery order."""

    type: str
    window_id: Optional[int] = Field(default=None, alias="windowId")
    tab_id: Optional[int] = Field(default=None, alias="tabId")
    data: dict[str, Any] = Field(default_factory=dict)

    model_config = {"populate_by_name": True}
