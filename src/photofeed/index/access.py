"""Best-effort public link access for indexed objects."""

from __future__ import annotations

import logging

from photofeed.models import ANYONE, READER, Grant, GrantResult
from photofeed.storage.base import StorageBackend

LOGGER = logging.getLogger(__name__)


class AccessNormalizer:
    """Ensures objects carry an "anyone with the link" reader grant."""

    def __init__(self, backend: StorageBackend) -> None:
        self.backend = backend

    def ensure_publicly_readable(self, object_id: str) -> GrantResult:
        """Add a link-reader grant if none exists. Never raises."""
        try:
            grants = self.backend.list_grants(object_id)
            if any(grant.type == ANYONE for grant in grants):
                return GrantResult(ok=True, created=False)
            self.backend.add_grant(object_id, Grant(role=READER, type=ANYONE))
        except Exception as exc:
            LOGGER.warning("Could not make %s publicly readable: %s", object_id, exc)
            return GrantResult(ok=False, reason=str(exc) or type(exc).__name__)
        LOGGER.debug("Granted link access on %s", object_id)
        return GrantResult(ok=True, created=True)
