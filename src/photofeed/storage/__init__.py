"""Storage backends scanned for uploaded images."""

from photofeed.storage.base import StorageBackend
from photofeed.storage.local import LocalFolderBackend

__all__ = ["LocalFolderBackend", "StorageBackend"]
