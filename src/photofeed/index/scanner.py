"""Folder enumeration filtered to image objects."""

from __future__ import annotations

import logging
from typing import Iterator

from photofeed.config import is_placeholder
from photofeed.errors import ConfigurationError
from photofeed.models import ScannedObject
from photofeed.storage.base import StorageBackend

LOGGER = logging.getLogger(__name__)

IMAGE_PREFIX = "image/"


def is_image_type(content_type: str | None) -> bool:
    return content_type is not None and content_type.startswith(IMAGE_PREFIX)


class FolderScanner:
    """Lists the image objects of a single flat storage folder."""

    def __init__(self, backend: StorageBackend) -> None:
        self.backend = backend

    def list_image_objects(self, folder_ref: str | None) -> Iterator[ScannedObject]:
        """Return a single-pass iterator over the folder's images.

        The folder is resolved before the iterator is returned, so
        ``ConfigurationError`` and ``NotFoundError`` surface here rather than
        on first iteration.
        """
        if is_placeholder(folder_ref):
            raise ConfigurationError("No storage folder configured")
        folder_ref = str(folder_ref).strip()
        self.backend.open_folder(folder_ref)
        return self._iter_images(folder_ref)

    def _iter_images(self, folder_ref: str) -> Iterator[ScannedObject]:
        skipped = 0
        for object_id, content_type in self.backend.iter_folder(folder_ref):
            if not is_image_type(content_type):
                skipped += 1
                continue
            yield ScannedObject(id=object_id, mime_type=content_type)  # type: ignore[arg-type]
        if skipped:
            LOGGER.debug("Skipped %d non-image objects in %s", skipped, folder_ref)
