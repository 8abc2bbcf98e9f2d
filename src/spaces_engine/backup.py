"""
Backup import and export.

Two import formats are accepted: a JSON backup (an array of
`{name, tabs}` objects, as produced by `spaces_for_backup`) and a plain list
of URLs, one per line.
"""

import json
import re
from typing import Any, Iterable, Optional

from pydantic import BaseModel

from spaces_engine.models.session import Space

SUSPENDED_PAGE = "suspended.html"
IMPORTED_NAME_PREFIX = "Imported space: "
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


class ImportResult(BaseModel):
    type: str  # "empty" | "json" | "txt" | "unknown"
    valid: bool
    data: Optional[Any] = None
    error: Optional[str] = None

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


def _validate_backup(parsed: Any) -> ImportResult:
    if not isinstance(parsed, list):
        return ImportResult(type="json", valid=False, error="Backup must be an array of spaces")
    if not parsed:
        return ImportResult(type="json", valid=False, error="Backup contains no spaces")
    for space in parsed:
        if not isinstance(space, dict) or "name" not in space or "tabs" not in space:
            return ImportResult(type="json", valid=False, error="Every space needs a name and tabs")
    return ImportResult(type="json", valid=True, data=parsed)


def validate_import_format(text: Optional[str]) -> ImportResult:
    if text is None or not text.strip():
        return ImportResult(type="empty", valid=False, error="Nothing to import")

    try:
        parsed = json.loads(text)
    except ValueError:
        pass
    else:
        return _validate_backup(parsed)

    urls = [line.strip() for line in _LINE_BREAK.split(text)]
    urls = [url for url in urls if url.find("://") > 0]
    if urls:
        return ImportResult(type="txt", valid=True, data=urls)
    return ImportResult(type="unknown", valid=False, error="No valid URLs or JSON found")


def normalise_tab_url(url: str) -> str:
    """Unwrap a suspended tab's URL to the page it stands in for."""
    if SUSPENDED_PAGE in url and "uri=" in url:
        return url.split("uri=", 1)[1]
    return url


def spaces_for_backup(spaces: Iterable[Space]) -> list[dict[str, Any]]:
    return [
        {
            "name": space.name,
            "tabs": [
                {"title": tab.title, "url": normalise_tab_url(tab.url), "favIconUrl": tab.fav_icon_url}
                for tab in space.tabs
            ],
        }
        for space in spaces
    ]


def space_url_list(space: Space) -> str:
    """One space as a plain URL list, the format `validate_import_format` reads back as "txt"."""
    return "".join(f"{normalise_tab_url(tab.url)}\n" for tab in space.tabs)


def import_session_name(taken: Iterable[str]) -> str:
    """First free "Imported space: N" name, compared case-insensitively."""
    used = {name.casefold() for name in taken}
    count = 1
    while f"{IMPORTED_NAME_PREFIX}{count}".casefold() in used:
        count += 1
    return f"{IMPORTED_NAME_PREFIX}{count}"
