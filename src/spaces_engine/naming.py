"""
Session name conflict resolution.

Names are unique under case-insensitive comparison. A clash either blocks the
write or, with overwrite permission, requires the caller to delete the other
session first. Renaming a session to a different casing of its own name is
never a clash.
"""

from dataclasses import dataclass
from typing import Optional

from spaces_engine.stores.base import SessionStore


@dataclass(frozen=True)
class Resolution:
    proceed: bool
    existing_id: Optional[int] = None

    @property
    def requires_delete(self) -> bool:
        return self.proceed and self.existing_id is not None


async def resolve_conflict(
    store: SessionStore,
    candidate_name: Optional[str],
    allow_overwrite: bool,
    renaming_id: Optional[int] = None,
) -> Resolution:
    existing = await store.fetch_session_by_name(candidate_name)
    if existing is None:
        return Resolution(proceed=True)
    if renaming_id is not None and existing.id == renaming_id:
        return Resolution(proceed=True)
    if not allow_overwrite:
        return Resolution(proceed=False, existing_id=existing.id)
    return Resolution(proceed=True, existing_id=existing.id)
