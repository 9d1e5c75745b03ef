"""Shared fixtures for PhotoFeed tests."""

from __future__ import annotations

from typing import Dict, Iterator, List, Optional, Tuple

import pytest

from photofeed.errors import MetadataFetchError, NotFoundError, PermissionGrantError
from photofeed.models import Grant, ObjectMetadata
from photofeed.storage.base import StorageBackend


class MemoryBackend(StorageBackend):
    """In-memory storage backend with switchable failures."""

    def __init__(self) -> None:
        self.folders: Dict[str, List[Tuple[str, Optional[str]]]] = {}
        self.metadata: Dict[str, ObjectMetadata] = {}
        self.grants: Dict[str, List[Grant]] = {}
        self.content: Dict[str, bytes] = {}
        self.metadata_failures: set[str] = set()
        self.grant_failures: set[str] = set()
        self.metadata_calls: List[str] = []

    def add(
        self,
        folder: str,
        object_id: str,
        content_type: Optional[str] = "image/jpeg",
        metadata: Optional[ObjectMetadata] = None,
    ) -> None:
        self.folders.setdefault(folder, []).append((object_id, content_type))
        self.metadata[object_id] = metadata or ObjectMetadata()
        self.content[object_id] = b"bytes-" + object_id.encode()

    def open_folder(self, folder_ref: str) -> None:
        if folder_ref not in self.folders:
            raise NotFoundError(f"Folder not found: {folder_ref}")

    def iter_folder(self, folder_ref: str) -> Iterator[Tuple[str, Optional[str]]]:
        self.open_folder(folder_ref)
        yield from list(self.folders[folder_ref])

    def get_metadata(self, object_id: str) -> ObjectMetadata:
        self.metadata_calls.append(object_id)
        if object_id in self.metadata_failures:
            raise MetadataFetchError(f"metadata unavailable for {object_id}")
        return self.metadata[object_id]

    def list_grants(self, object_id: str) -> List[Grant]:
        if object_id in self.grant_failures:
            raise PermissionGrantError("quota exceeded")
        return list(self.grants.get(object_id, []))

    def add_grant(self, object_id: str, grant: Grant) -> None:
        if object_id in self.grant_failures:
            raise PermissionGrantError("quota exceeded")
        self.grants.setdefault(object_id, []).append(grant)

    def read_content(self, object_id: str) -> bytes:
        if object_id not in self.content:
            raise NotFoundError(object_id)
        return self.content[object_id]


@pytest.fixture
def backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture
def fixed_clock():
    return lambda: "2024-01-01T00:00:00.000Z"
