from __future__ import annotations


class SourcesError(Exception):
    """Base error for the sources server."""


class ValidationError(SourcesError):
    """Raised when user input is invalid."""


class NotFoundError(SourcesError):
    """Raised when a requested document is not found."""


class IngestError(SourcesError):
    """Raised when an ingestion pass cannot produce a tree."""


class RootNotFoundError(IngestError):
    """Raised when the ingestion root is missing or unreadable."""


class EntryReadError(SourcesError):
    """Raised when a single file or directory under the root cannot be read."""


class TransformError(SourcesError):
    """Raised when a document body cannot be rendered."""


class WatchSourceError(SourcesError):
    """Raised when the filesystem notification source fails."""


class SubscriberWriteError(SourcesError):
    """Raised when a message cannot be delivered to a subscriber."""
