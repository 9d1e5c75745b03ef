"""Directory-backed storage backend.

Each folder reference names a flat sub-directory of ``root``. Object IDs
encode the folder and file name, so they stay unique across folders without
a lookup table. Access grants live in a ``.grants.json`` sidecar inside the
folder.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import mimetypes
from datetime import datetime, timezone
from pathlib import Path
from stat import S_ISREG
from typing import Dict, Iterator, List, Optional, Tuple

from PIL import Image

from photofeed.errors import MetadataFetchError, NotFoundError, PermissionGrantError
from photofeed.models import Grant, ObjectMetadata
from photofeed.storage.base import StorageBackend

LOGGER = logging.getLogger(__name__)

GRANTS_FILE = ".grants.json"


def encode_object_id(folder_ref: str, name: str) -> str:
    raw = f"{folder_ref}/{name}".encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode_object_id(object_id: str) -> Tuple[str, str]:
    padded = object_id + "=" * (-len(object_id) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")
    except (binascii.Error, UnicodeError, ValueError) as exc:
        raise NotFoundError(f"Unknown object id: {object_id}") from exc
    folder_ref, sep, name = raw.partition("/")
    if not sep or not folder_ref or not name or "/" in name:
        raise NotFoundError(f"Unknown object id: {object_id}")
    return folder_ref, name


class LocalFolderBackend(StorageBackend):
    """Storage backend reading uploads from directories under ``root``."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def _folder_path(self, folder_ref: str) -> Path:
        if not folder_ref or folder_ref in {".", ".."} or "/" in folder_ref or "\\" in folder_ref:
            raise NotFoundError(f"Invalid folder reference: {folder_ref!r}")
        path = self.root / folder_ref
        if not path.is_dir():
            raise NotFoundError(f"Folder not found: {folder_ref}")
        return path

    def _object_path(self, object_id: str) -> Path:
        folder_ref, name = decode_object_id(object_id)
        path = self._folder_path(folder_ref) / name
        if not path.is_file():
            raise NotFoundError(f"Object not found: {object_id}")
        return path

    def open_folder(self, folder_ref: str) -> None:
        self._folder_path(folder_ref)

    def iter_folder(self, folder_ref: str) -> Iterator[Tuple[str, Optional[str]]]:
        """Yield objects newest-modified first, then by name."""
        folder = self._folder_path(folder_ref)
        files: List[Tuple[float, str]] = []
        for child in folder.iterdir():
            if child.name.startswith("."):
                continue
            try:
                info = child.stat()
            except FileNotFoundError:
                LOGGER.debug("Skipping %s, removed during scan", child)
                continue
            if S_ISREG(info.st_mode):
                files.append((-info.st_mtime, child.name))
        files.sort()
        for _, name in files:
            content_type, _ = mimetypes.guess_type(name)
            yield encode_object_id(folder_ref, name), content_type

    def get_metadata(self, object_id: str) -> ObjectMetadata:
        try:
            path = self._object_path(object_id)
            stat = path.stat()
        except (NotFoundError, OSError) as exc:
            raise MetadataFetchError(str(exc)) from exc

        width: int | None = None
        height: int | None = None
        try:
            with Image.open(path) as image:
                width, height = image.size
        except OSError:
            LOGGER.debug("Unable to read image dimensions for %s", path)

        created = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)
        return ObjectMetadata(
            width=width,
            height=height,
            created_time=created.isoformat().replace("+00:00", "Z"),
        )

    def _grants_path(self, object_id: str) -> Tuple[Path, str]:
        path = self._object_path(object_id)
        return path.parent / GRANTS_FILE, path.name

    def _read_grants(self, grants_path: Path) -> Dict[str, List[Dict[str, str]]]:
        if not grants_path.exists():
            return {}
        data = json.loads(grants_path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise PermissionGrantError(f"Malformed grants file: {grants_path}")
        return data

    def list_grants(self, object_id: str) -> List[Grant]:
        try:
            grants_path, name = self._grants_path(object_id)
            data = self._read_grants(grants_path)
        except (NotFoundError, OSError, json.JSONDecodeError) as exc:
            raise PermissionGrantError(str(exc)) from exc
        return [
            Grant(role=str(item.get("role", "")), type=str(item.get("type", "")))
            for item in data.get(name, [])
            if isinstance(item, dict)
        ]

    def add_grant(self, object_id: str, grant: Grant) -> None:
        try:
            grants_path, name = self._grants_path(object_id)
            data = self._read_grants(grants_path)
            data.setdefault(name, []).append(grant.to_dict())
            grants_path.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")
        except (NotFoundError, OSError, json.JSONDecodeError) as exc:
            raise PermissionGrantError(str(exc)) from exc

    def read_content(self, object_id: str) -> bytes:
        path = self._object_path(object_id)
        return path.read_bytes()
