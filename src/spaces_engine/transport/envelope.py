"""
Envelope construction and parsing for bridge traffic.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from spaces_engine.models.envelope import MessageEnvelope, MessageMetadata, MessagePayload, UserSource


def build_envelope(
    event_type: str,
    data: Any,
    client_id: str,
    method: Optional[str] = None,
    request_id: Optional[str] = None,
) -> dict[str, Any]:
    """Build an engine-originated envelope as a dict ready for Socket.IO emit."""
    envelope = MessageEnvelope(
        metadata=MessageMetadata(
            event_id=str(uuid.uuid4()),
            request_id=request_id or str(uuid.uuid4()),
            timestamp=datetime.now(timezone.utc).isoformat(),
            source=UserSource(role="engine", client_id=client_id),
        ),
        type=event_type,
        payload=MessagePayload(method=method, data=data),
    )
    return envelope.model_dump()


def parse_envelope(raw: dict[str, Any]) -> Optional[MessageEnvelope]:
    """Parse a bridge envelope. Returns None if invalid."""
    try:
        return MessageEnvelope.model_validate(raw)
    except Exception:
        return None
