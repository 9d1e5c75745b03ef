"""Storage backend interface scanned by the reconciler."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterator, List, Optional, Tuple

from photofeed.models import ANYONE, Grant, ObjectMetadata


class StorageBackend(ABC):
    """Abstract base class for object-storage folders holding uploads.

    Object IDs are opaque strings that are unique across the backend.
    """

    @abstractmethod
    def open_folder(self, folder_ref: str) -> None:
        """Resolve ``folder_ref`` or raise ``NotFoundError``."""

    @abstractmethod
    def iter_folder(self, folder_ref: str) -> Iterator[Tuple[str, Optional[str]]]:
        """Yield ``(object_id, content_type)`` for every object in the folder."""

    @abstractmethod
    def get_metadata(self, object_id: str) -> ObjectMetadata:
        """Return rich metadata or raise ``MetadataFetchError``."""

    @abstractmethod
    def list_grants(self, object_id: str) -> List[Grant]:
        """Return the access grants on an object."""

    @abstractmethod
    def add_grant(self, object_id: str, grant: Grant) -> None:
        """Attach a new access grant to an object."""

    @abstractmethod
    def read_content(self, object_id: str) -> bytes:
        """Return the object bytes or raise ``NotFoundError``."""

    def is_publicly_readable(self, object_id: str) -> bool:
        return any(grant.type == ANYONE for grant in self.list_grants(object_id))
