"""Exception types raised across PhotoFeed."""

from __future__ import annotations


class PhotoFeedError(Exception):
    """Base class for all PhotoFeed errors."""


class ConfigurationError(PhotoFeedError):
    """The storage folder reference is missing or still the placeholder."""


class NotFoundError(PhotoFeedError):
    """The configured folder or a requested object cannot be resolved."""


class PermissionGrantError(PhotoFeedError):
    """Listing or creating an access grant failed."""


class MetadataFetchError(PhotoFeedError):
    """The backend could not report metadata for an object."""


class PersistedDocumentCorrupt(PhotoFeedError):
    """The persisted index document is not a JSON array."""


class LockUnavailableError(PhotoFeedError):
    """Another reconciliation pass holds the index lock."""
