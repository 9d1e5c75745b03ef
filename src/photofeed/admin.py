"""Out-of-band administrative operations."""

from __future__ import annotations

import logging
from typing import List, Optional

from photofeed.config import PropertyStore, is_placeholder
from photofeed.errors import ConfigurationError
from photofeed.index.lock import IndexLock, lock_path_for
from photofeed.index.store import IndexStore
from photofeed.models import IndexEntry

LOGGER = logging.getLogger(__name__)


def set_folder(properties: PropertyStore, folder_ref: str) -> None:
    """Record the storage folder scanned by future passes."""
    if is_placeholder(folder_ref):
        raise ConfigurationError(f"Refusing to store empty or placeholder folder: {folder_ref!r}")
    properties.set_folder(folder_ref.strip())
    LOGGER.info("Storage folder set to %s", folder_ref.strip())


def clear_index(store: IndexStore, lock: Optional[IndexLock] = None) -> None:
    """Delete the persisted index so the next pass rebuilds it.

    Runs under the same lock as reconciliation passes, so a pass in flight
    cannot write the old entries back afterwards. Raises
    ``LockUnavailableError`` if a pass keeps holding it.
    """
    with lock or IndexLock(lock_path_for(store.path)):
        store.clear()
    LOGGER.info("Cleared index %s", store.path)


def get_index_data(store: IndexStore) -> List[IndexEntry]:
    return store.load()
