"""Shared services for the web layer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from photofeed.config import AppConfig, PropertyStore
from photofeed.index.reconciler import Reconciler, build_reconciler
from photofeed.index.store import IndexStore
from photofeed.storage.base import StorageBackend
from photofeed.storage.local import LocalFolderBackend


@dataclass
class Services:
    config: AppConfig
    backend: StorageBackend
    properties: PropertyStore
    store: IndexStore
    reconciler: Reconciler


def build_services(config: AppConfig) -> Services:
    backend = LocalFolderBackend(config.resolve_storage_root())
    properties = PropertyStore(config.resolve_settings_path())
    reconciler = build_reconciler(config, backend, properties)
    return Services(
        config=config,
        backend=backend,
        properties=properties,
        store=reconciler.store,
        reconciler=reconciler,
    )


_services: Optional[Services] = None


def configure(config: AppConfig) -> Services:
    """Replace the process-wide services, e.g. from the ``web`` CLI command."""
    global _services
    _services = build_services(config)
    return _services


def get_services() -> Services:
    global _services
    if _services is None:
        _services = build_services(AppConfig.from_env())
    return _services
