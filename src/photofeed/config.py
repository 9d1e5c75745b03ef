"""Application configuration defaults and the property store."""

from __future__ import annotations

import json
import logging
import os
import sys
import threading
from dataclasses import dataclass, field
from pathlib import Path

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_INDEX_ITEMS = 2000
DEFAULT_URL_TEMPLATE = "/objects/{id}"
FOLDER_PLACEHOLDER = "YOUR_FOLDER_ID"
FOLDER_PROPERTY = "folder_id"


def _get_default_data_dir() -> Path:
    """Get the default data directory based on platform and execution context."""
    user_dir = Path.home() / "Documents" / "PhotoFeed"

    if getattr(sys, "frozen", False):
        return user_dir

    # When running from source, prefer local data/ if it exists
    local_dir = Path("data")
    if local_dir.exists():
        return local_dir

    return user_dir


@dataclass(slots=True)
class AppConfig:
    index_path: Path | None = None
    storage_root: Path | None = None
    settings_path: Path | None = None
    max_index_items: int = DEFAULT_MAX_INDEX_ITEMS
    public_url_template: str = DEFAULT_URL_TEMPLATE
    sync_interval: float = 600.0
    lock_timeout: float = 30.0
    lock_stale_after: float = 300.0

    def __post_init__(self) -> None:
        data_dir = _get_default_data_dir()
        if self.index_path is None:
            self.index_path = data_dir / "index.json"
        if self.storage_root is None:
            self.storage_root = data_dir / "storage"
        if self.settings_path is None:
            self.settings_path = data_dir / "settings.json"
        if self.max_index_items < 1:
            raise ValueError("max_index_items must be at least 1")
        try:
            self.public_url_template.format(id="x")
        except (AttributeError, IndexError, KeyError, ValueError) as exc:
            raise ValueError(
                f"public_url_template must only use the {{id}} field: {self.public_url_template!r}"
            ) from exc

    @classmethod
    def from_env(cls, **overrides: object) -> "AppConfig":
        """Build a config from ``PHOTOFEED_*`` environment variables.

        Explicit keyword overrides that are not ``None`` win over the environment.
        """
        values: dict[str, object] = {}
        if os.environ.get("PHOTOFEED_INDEX"):
            values["index_path"] = Path(os.environ["PHOTOFEED_INDEX"])
        if os.environ.get("PHOTOFEED_STORAGE"):
            values["storage_root"] = Path(os.environ["PHOTOFEED_STORAGE"])
        if os.environ.get("PHOTOFEED_SETTINGS"):
            values["settings_path"] = Path(os.environ["PHOTOFEED_SETTINGS"])
        if os.environ.get("PHOTOFEED_MAX_ITEMS"):
            values["max_index_items"] = int(os.environ["PHOTOFEED_MAX_ITEMS"])
        if os.environ.get("PHOTOFEED_SYNC_INTERVAL"):
            values["sync_interval"] = float(os.environ["PHOTOFEED_SYNC_INTERVAL"])
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)  # type: ignore[arg-type]

    @staticmethod
    def resolve_path(path: Path, base_dir: Path | None = None) -> Path:
        if Path(path).is_absolute() or base_dir is None:
            return Path(path)
        return base_dir / path

    def resolve_index_path(self, base_dir: Path | None = None) -> Path:
        return self.resolve_path(self.index_path, base_dir)  # type: ignore[arg-type]

    def resolve_storage_root(self, base_dir: Path | None = None) -> Path:
        return self.resolve_path(self.storage_root, base_dir)  # type: ignore[arg-type]

    def resolve_settings_path(self, base_dir: Path | None = None) -> Path:
        return self.resolve_path(self.settings_path, base_dir)  # type: ignore[arg-type]


def is_placeholder(folder_ref: str | None) -> bool:
    """Return True when ``folder_ref`` is missing or still the placeholder value."""
    return not folder_ref or not folder_ref.strip() or folder_ref.strip() == FOLDER_PLACEHOLDER


@dataclass
class PropertyStore:
    """Small JSON-file key-value store holding string properties."""

    path: Path
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def __post_init__(self) -> None:
        self.path = Path(self.path)

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            LOGGER.error("Unable to read properties from %s: %s", self.path, exc)
            return {}
        if not isinstance(data, dict):
            LOGGER.error("Ignoring properties file %s: not a JSON object", self.path)
            return {}
        return {str(key): str(value) for key, value in data.items() if value is not None}

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read()
            data[key] = value
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")

    def get_folder(self) -> str | None:
        return self.get(FOLDER_PROPERTY)

    def set_folder(self, folder_ref: str) -> None:
        self.set(FOLDER_PROPERTY, folder_ref)
