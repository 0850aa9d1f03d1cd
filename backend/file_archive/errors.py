"""Typed failures raised by the archive catalog and its store collaborators.

Routes map these to HTTP statuses; nothing below the route layer knows
about status codes.
"""


class ArchiveError(Exception):
    """Base class for all archive failures."""


class ValidationError(ArchiveError):
    """Bad or missing input, e.g. an upload without a file."""


class NotFoundError(ArchiveError):
    """No archive record (or blob) exists for the given identifier."""


class StorageError(ArchiveError):
    """Blob store failure."""


class StorageWriteError(StorageError):
    """A blob could not be written."""


class StorageReadError(StorageError):
    """A blob could not be read or signed for reading."""


class StorageDeleteError(StorageError):
    """A blob could not be deleted."""


class SignatureError(StorageReadError):
    """A signed retrieval reference is malformed, forged, or expired."""


class MetadataError(ArchiveError):
    """Metadata store failure."""


class MetadataWriteError(MetadataError):
    """A record could not be written."""


class MetadataReadError(MetadataError):
    """Records could not be read or scanned."""


class MetadataDeleteError(MetadataError):
    """A record could not be deleted."""
