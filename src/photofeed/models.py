"""Core PhotoFeed data models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

ANYONE = "anyone"
READER = "reader"


def _positive_int(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value if value > 0 else None


@dataclass(slots=True)
class IndexEntry:
    """One discovered image as persisted in the index document."""

    id: str
    mime_type: str
    thumb: str
    url: str
    width: int | None
    height: int | None
    created: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "mimeType": self.mime_type,
            "thumb": self.thumb,
            "url": self.url,
            "width": self.width,
            "height": self.height,
            "created": self.created,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IndexEntry":
        """Build an entry from its persisted form.

        Raises ``ValueError`` when ``id`` is missing; other absent fields load
        as empty strings or ``None``.
        """
        entry_id = data.get("id")
        if not isinstance(entry_id, str) or not entry_id:
            raise ValueError("index entry has no id")
        return cls(
            id=entry_id,
            mime_type=str(data.get("mimeType") or ""),
            thumb=str(data.get("thumb") or ""),
            url=str(data.get("url") or ""),
            width=_positive_int(data.get("width")),
            height=_positive_int(data.get("height")),
            created=str(data.get("created") or ""),
        )


@dataclass(slots=True, frozen=True)
class ScannedObject:
    """An image object observed while enumerating a folder."""

    id: str
    mime_type: str


@dataclass(slots=True)
class ObjectMetadata:
    """Optional rich fields a storage backend can report for an object."""

    thumbnail_link: str | None = None
    content_link: str | None = None
    width: int | None = None
    height: int | None = None
    created_time: str | None = None


@dataclass(slots=True, frozen=True)
class Grant:
    role: str
    type: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "type": self.type}


@dataclass(slots=True, frozen=True)
class GrantResult:
    """Outcome of making an object link-readable."""

    ok: bool
    created: bool = False
    reason: str | None = None
