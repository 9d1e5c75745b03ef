"""Reconciliation pass: scan, diff, enrich, merge, trim, persist."""

from __future__ import annotations

import contextlib
import enum
import logging
from dataclasses import dataclass, field
from typing import Callable, ContextManager, List, Optional

from photofeed.config import DEFAULT_MAX_INDEX_ITEMS, AppConfig, PropertyStore
from photofeed.errors import ConfigurationError, LockUnavailableError, NotFoundError
from photofeed.index.access import AccessNormalizer
from photofeed.index.enricher import MetadataEnricher
from photofeed.index.lock import IndexLock, lock_path_for
from photofeed.index.scanner import FolderScanner
from photofeed.index.store import IndexStore
from photofeed.models import IndexEntry
from photofeed.storage.base import StorageBackend

LOGGER = logging.getLogger(__name__)


class ReconcileState(str, enum.Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    DIFFING = "diffing"
    ENRICHING = "enriching"
    MERGING = "merging"
    PERSISTING = "persisting"


STATUS_OK = "ok"
STATUS_ABORTED = "aborted"
STATUS_BUSY = "busy"
STATUS_FAILED = "failed"


@dataclass(slots=True)
class ReconcileStats:
    trigger: str = "manual"
    status: str = STATUS_OK
    reason: Optional[str] = None
    scanned: int = 0
    discovered: int = 0
    grant_failures: int = 0
    metadata_fallbacks: int = 0
    dropped: int = 0
    persisted: bool = False
    index_size: int = 0
    new_ids: List[str] = field(default_factory=list)
    states: List[str] = field(default_factory=list)

    def enter(self, state: ReconcileState) -> None:
        self.states.append(state.value)

    def to_dict(self) -> dict:
        return {
            "trigger": self.trigger,
            "status": self.status,
            "reason": self.reason,
            "scanned": self.scanned,
            "discovered": self.discovered,
            "grant_failures": self.grant_failures,
            "metadata_fallbacks": self.metadata_fallbacks,
            "dropped": self.dropped,
            "persisted": self.persisted,
            "index_size": self.index_size,
            "new_ids": list(self.new_ids),
        }


def merge_entries(
    new_entries: List[IndexEntry], existing: List[IndexEntry], max_items: int
) -> List[IndexEntry]:
    """Prepend ``new_entries`` and drop the oldest beyond ``max_items``."""
    return (new_entries + existing)[:max_items]


class Reconciler:
    """Coordinates one reconciliation pass over the configured folder."""

    def __init__(
        self,
        store: IndexStore,
        scanner: FolderScanner,
        normalizer: AccessNormalizer,
        enricher: MetadataEnricher,
        *,
        folder_provider: Callable[[], Optional[str]],
        max_items: int = DEFAULT_MAX_INDEX_ITEMS,
        lock: Optional[IndexLock] = None,
    ) -> None:
        if max_items < 1:
            raise ValueError("max_items must be at least 1")
        self.store = store
        self.scanner = scanner
        self.normalizer = normalizer
        self.enricher = enricher
        self.folder_provider = folder_provider
        self.max_items = max_items
        self.lock = lock

    def _locked(self) -> ContextManager[object]:
        if self.lock is None:
            return contextlib.nullcontext()
        return self.lock

    def _refresh_lock(self) -> None:
        if self.lock is not None:
            self.lock.refresh()

    def reconcile(self, trigger: str = "manual") -> ReconcileStats:
        """Run one pass.

        Raises ``ConfigurationError`` or ``NotFoundError`` if the folder cannot
        be resolved and ``LockUnavailableError`` if another pass holds the
        lock; the index is left untouched in all three cases.
        """
        stats = ReconcileStats(trigger=trigger)
        with self._locked():
            existing = self.store.load()
            known_ids = {entry.id for entry in existing}

            stats.enter(ReconcileState.SCANNING)
            objects = self.scanner.list_image_objects(self.folder_provider())

            stats.enter(ReconcileState.DIFFING)
            new_entries: List[IndexEntry] = []
            for scanned in objects:
                stats.scanned += 1
                if scanned.id in known_ids:
                    continue
                if not new_entries:
                    stats.enter(ReconcileState.ENRICHING)
                self._refresh_lock()

                grant = self.normalizer.ensure_publicly_readable(scanned.id)
                if not grant.ok:
                    stats.grant_failures += 1

                result = self.enricher.enrich_detailed(scanned.id, scanned.mime_type)
                if result.degraded:
                    stats.metadata_fallbacks += 1

                new_entries.append(result.entry)
                known_ids.add(scanned.id)
                stats.new_ids.append(scanned.id)

            stats.discovered = len(new_entries)
            if not new_entries:
                stats.index_size = len(existing)
                stats.enter(ReconcileState.IDLE)
                LOGGER.debug("No new images among %d scanned objects", stats.scanned)
                return stats

            stats.enter(ReconcileState.MERGING)
            merged = merge_entries(new_entries, existing, self.max_items)
            stats.dropped = len(existing) + len(new_entries) - len(merged)
            stats.index_size = len(merged)

            stats.enter(ReconcileState.PERSISTING)
            # Abort rather than overwrite if a waiter broke our lock as stale
            self._refresh_lock()
            self.store.save(merged)
            stats.persisted = True

        stats.enter(ReconcileState.IDLE)
        LOGGER.info(
            "Indexed %d new images (%d dropped, %d total)",
            stats.discovered,
            stats.dropped,
            stats.index_size,
        )
        return stats

    def run_pass(self, trigger: str = "manual") -> ReconcileStats:
        """Trigger entry point: run :meth:`reconcile` and log instead of raising."""
        try:
            return self.reconcile(trigger)
        except (ConfigurationError, NotFoundError) as exc:
            LOGGER.error("Skipping %s reconciliation: %s", trigger, exc)
            return ReconcileStats(trigger=trigger, status=STATUS_ABORTED, reason=str(exc))
        except LockUnavailableError as exc:
            LOGGER.warning("Skipping %s reconciliation: %s", trigger, exc)
            return ReconcileStats(trigger=trigger, status=STATUS_BUSY, reason=str(exc))
        except Exception as exc:
            LOGGER.exception("Reconciliation (%s) failed: %s", trigger, exc)
            return ReconcileStats(trigger=trigger, status=STATUS_FAILED, reason=str(exc))


def build_reconciler(
    config: AppConfig,
    backend: StorageBackend,
    properties: PropertyStore,
) -> Reconciler:
    """Wire a :class:`Reconciler` from configuration."""
    index_path = config.resolve_index_path()
    return Reconciler(
        IndexStore(index_path),
        FolderScanner(backend),
        AccessNormalizer(backend),
        MetadataEnricher(backend, url_template=config.public_url_template),
        folder_provider=properties.get_folder,
        max_items=config.max_index_items,
        lock=IndexLock(
            lock_path_for(index_path),
            timeout=config.lock_timeout,
            stale_after=config.lock_stale_after,
        ),
    )
