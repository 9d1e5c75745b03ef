"""JSON document persistence for the image index."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, List, Sequence

from photofeed.errors import PersistedDocumentCorrupt
from photofeed.models import IndexEntry

LOGGER = logging.getLogger(__name__)


def serialize_index(entries: Sequence[IndexEntry]) -> str:
    return json.dumps([entry.to_dict() for entry in entries], ensure_ascii=False)


def parse_index(text: str) -> List[IndexEntry]:
    """Parse a persisted document.

    Raises ``PersistedDocumentCorrupt`` if the text is not a JSON array.
    Malformed elements inside a valid array are skipped.
    """
    try:
        data: Any = json.loads(text)
    except json.JSONDecodeError as exc:
        raise PersistedDocumentCorrupt(f"Invalid JSON: {exc}") from exc
    if not isinstance(data, list):
        raise PersistedDocumentCorrupt(f"Expected a JSON array, got {type(data).__name__}")

    entries: List[IndexEntry] = []
    for position, item in enumerate(data):
        if not isinstance(item, dict):
            LOGGER.warning("Skipping index element %d: not an object", position)
            continue
        try:
            entries.append(IndexEntry.from_dict(item))
        except ValueError as exc:
            LOGGER.warning("Skipping index element %d: %s", position, exc)
    return entries


class IndexStore:
    """Loads and persists the index as a single JSON document."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def read_raw(self) -> str | None:
        if not self.path.exists():
            return None
        return self.path.read_text(encoding="utf-8")

    def load(self) -> List[IndexEntry]:
        text = self.read_raw()
        if text is None:
            return []
        try:
            return parse_index(text)
        except PersistedDocumentCorrupt as exc:
            LOGGER.error("Index document %s is corrupt, treating as empty: %s", self.path, exc)
            return []

    def save(self, entries: Sequence[IndexEntry]) -> None:
        """Overwrite the document, creating it if missing."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = serialize_index(entries)

        # Write to a sibling temp file, then replace, so readers never see a partial document
        temp_fd, temp_path = tempfile.mkstemp(
            dir=self.path.parent,
            prefix=f".{self.path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(temp_fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(temp_path, self.path)
        except Exception:
            Path(temp_path).unlink(missing_ok=True)
            raise
        LOGGER.debug("Saved %d index entries to %s", len(entries), self.path)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
        LOGGER.info("Cleared index document %s", self.path)
