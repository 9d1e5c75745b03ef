"""Metadata resolution for newly discovered objects.

Each optional field of an :class:`IndexEntry` is resolved through a
:class:`FallbackChain`: an ordered list of named strategies where the first
one returning a non-empty value wins.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Generic, List, Optional, Sequence, Tuple, TypeVar

from photofeed.config import DEFAULT_URL_TEMPLATE
from photofeed.models import IndexEntry, ObjectMetadata
from photofeed.storage.base import StorageBackend

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(slots=True)
class EnrichContext:
    """Inputs available to every fallback strategy."""

    object_id: str
    metadata: ObjectMetadata
    public_url: str
    now: str


@dataclass(frozen=True)
class Strategy(Generic[T]):
    name: str
    resolve: Callable[[EnrichContext], Optional[T]]


class FallbackChain(Generic[T]):
    """Ordered strategies; the first non-empty result wins."""

    def __init__(self, strategies: Sequence[Strategy[T]], default: Optional[T] = None) -> None:
        self.strategies: List[Strategy[T]] = list(strategies)
        self.default = default

    @property
    def names(self) -> List[str]:
        return [strategy.name for strategy in self.strategies]

    def resolve(self, context: EnrichContext) -> Tuple[str, Optional[T]]:
        for strategy in self.strategies:
            value = strategy.resolve(context)
            if value is not None and value != "":
                return strategy.name, value
        return "default", self.default


def _positive(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value if value > 0 else None


THUMBNAIL_LINK: Strategy[str] = Strategy("thumbnail_link", lambda ctx: ctx.metadata.thumbnail_link)
CONTENT_LINK: Strategy[str] = Strategy("content_link", lambda ctx: ctx.metadata.content_link)
PUBLIC_DOWNLOAD: Strategy[str] = Strategy("public_download", lambda ctx: ctx.public_url)
IMAGE_WIDTH: Strategy[int] = Strategy("image_metadata", lambda ctx: _positive(ctx.metadata.width))
IMAGE_HEIGHT: Strategy[int] = Strategy("image_metadata", lambda ctx: _positive(ctx.metadata.height))
CREATED_TIME: Strategy[str] = Strategy("created_time", lambda ctx: ctx.metadata.created_time)
ENRICHMENT_CLOCK: Strategy[str] = Strategy("enrichment_clock", lambda ctx: ctx.now)


@dataclass(slots=True)
class EnrichResult:
    """An entry plus the strategy that supplied each optional field."""

    entry: IndexEntry
    degraded: bool = False
    reason: Optional[str] = None
    sources: Dict[str, str] = field(default_factory=dict)


class MetadataEnricher:
    """Builds an :class:`IndexEntry` for an object seen for the first time."""

    def __init__(
        self,
        backend: StorageBackend,
        *,
        url_template: str = DEFAULT_URL_TEMPLATE,
        clock: Callable[[], str] = utc_now_iso,
    ) -> None:
        self.backend = backend
        self.url_template = url_template
        self.clock = clock
        self.thumb_chain: FallbackChain[str] = FallbackChain([THUMBNAIL_LINK, PUBLIC_DOWNLOAD])
        self.url_chain: FallbackChain[str] = FallbackChain([CONTENT_LINK, PUBLIC_DOWNLOAD])
        self.width_chain: FallbackChain[int] = FallbackChain([IMAGE_WIDTH])
        self.height_chain: FallbackChain[int] = FallbackChain([IMAGE_HEIGHT])
        self.created_chain: FallbackChain[str] = FallbackChain([CREATED_TIME, ENRICHMENT_CLOCK])

    def public_download_url(self, object_id: str) -> str:
        try:
            return self.url_template.format(id=object_id)
        except (AttributeError, IndexError, KeyError, ValueError) as exc:
            LOGGER.warning(
                "Bad public URL template %r, using %r: %s", self.url_template, DEFAULT_URL_TEMPLATE, exc
            )
            return DEFAULT_URL_TEMPLATE.format(id=object_id)

    def now(self) -> str:
        try:
            return self.clock()
        except Exception as exc:
            LOGGER.warning("Enrichment clock failed, using system time: %s", exc)
            return utc_now_iso()

    def enrich(self, object_id: str, fallback_mime_type: str) -> IndexEntry:
        """Resolve the entry for ``object_id``; degrades instead of raising."""
        return self.enrich_detailed(object_id, fallback_mime_type).entry

    def enrich_detailed(self, object_id: str, fallback_mime_type: str) -> EnrichResult:
        try:
            metadata = self.backend.get_metadata(object_id)
        except Exception as exc:
            LOGGER.warning("Metadata lookup failed for %s, using minimal record: %s", object_id, exc)
            return self._degraded(object_id, fallback_mime_type, exc)

        try:
            return self._resolve(object_id, fallback_mime_type, metadata)
        except Exception as exc:
            LOGGER.warning("Could not resolve metadata for %s, using minimal record: %s", object_id, exc)
            return self._degraded(object_id, fallback_mime_type, exc)

    def _resolve(self, object_id: str, fallback_mime_type: str, metadata: ObjectMetadata) -> EnrichResult:
        context = EnrichContext(
            object_id=object_id,
            metadata=metadata,
            public_url=self.public_download_url(object_id),
            now=self.now(),
        )
        sources: Dict[str, str] = {}
        sources["thumb"], thumb = self.thumb_chain.resolve(context)
        sources["url"], url = self.url_chain.resolve(context)
        sources["width"], width = self.width_chain.resolve(context)
        sources["height"], height = self.height_chain.resolve(context)
        sources["created"], created = self.created_chain.resolve(context)
        entry = IndexEntry(
            id=object_id,
            mime_type=fallback_mime_type,
            thumb=thumb or context.public_url,
            url=url or context.public_url,
            width=width,
            height=height,
            created=created or context.now,
        )
        return EnrichResult(entry=entry, sources=sources)

    def _degraded(self, object_id: str, mime_type: str, exc: Exception) -> EnrichResult:
        return EnrichResult(
            entry=self.minimal_entry(object_id, mime_type),
            degraded=True,
            reason=str(exc) or type(exc).__name__,
        )

    def minimal_entry(self, object_id: str, mime_type: str) -> IndexEntry:
        public_url = self.public_download_url(object_id)
        return IndexEntry(
            id=object_id,
            mime_type=mime_type,
            thumb=public_url,
            url=public_url,
            width=None,
            height=None,
            created=self.now(),
        )
