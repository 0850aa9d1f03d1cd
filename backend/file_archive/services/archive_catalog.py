"""Archive catalog: the create/list/stats/delete logic over the two stores.

Every read re-scans the metadata store and filters in memory. There is no
in-process cache, so concurrent requests never see stale data.

Writes touch two stores with no transaction across them:
- create writes the blob, signs its share URL, then writes the record. A
  failed signature or record write leaves an orphaned blob, which is logged.
- delete removes the blob, then the record. A failed blob delete keeps the
  record; a failed record delete leaves a record whose download will fail.
Neither case is rolled back.
"""
import locale
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from file_archive.errors import (
    MetadataDeleteError,
    MetadataWriteError,
    NotFoundError,
    StorageReadError,
    ValidationError,
)
from file_archive.schemas.archive import (
    DEFAULT_CATEGORY,
    DEFAULT_CONTENT_TYPE,
    DEFAULT_UPLOADER,
    ArchiveRecord,
    ArchiveStats,
)
from file_archive.services.blob_store import BlobStore
from file_archive.services.metadata_store import MetadataStore

logger = logging.getLogger(__name__)

SORT_BY_DATE = "date"
SORT_BY_FILENAME = "filename"
RECENT_LIMIT = 5


def _or_default(value: Optional[str], default: str) -> str:
    """Blank or missing form values fall back to the default."""
    if value is None or not value.strip():
        return default
    return value


def _filename_sort_key(record: ArchiveRecord) -> tuple[str, str]:
    return (locale.strxfrm(record.filename.casefold()), record.filename)


class ArchiveCatalogService:
    """Orchestrates the blob store and metadata store for archive records."""

    def __init__(
        self,
        blob_store: BlobStore,
        metadata_store: MetadataStore,
        download_ttl_seconds: int = 60 * 5,
        share_ttl_seconds: int = 60 * 60 * 24 * 7,
    ):
        self.blob_store = blob_store
        self.metadata_store = metadata_store
        self.download_ttl_seconds = download_ttl_seconds
        self.share_ttl_seconds = share_ttl_seconds

    async def startup(self) -> None:
        await self.blob_store.startup()
        await self.metadata_store.startup()

    async def shutdown(self) -> None:
        await self.metadata_store.shutdown()
        await self.blob_store.shutdown()

    # ── Writes ───────────────────────────────────────────────────────

    async def create_archive(
        self,
        payload: bytes,
        original_filename: str,
        content_type: Optional[str],
        description: Optional[str] = None,
        category: Optional[str] = None,
        uploader: Optional[str] = None,
    ) -> tuple[ArchiveRecord, str]:
        """Store the payload, then persist its metadata record.

        Returns the record and its share URL. The URL is signed before the
        record is written, so a signing failure never leaves a record behind.
        """
        if not payload:
            raise ValidationError("No file uploaded")
        if not original_filename or not original_filename.strip():
            raise ValidationError("Uploaded file has no name")
        filename = original_filename

        blob_key = f"{uuid.uuid4()}-{filename}"
        content_type = content_type or DEFAULT_CONTENT_TYPE
        await self.blob_store.put(blob_key, payload, content_type, access="private")

        record = ArchiveRecord(
            id=str(uuid.uuid4()),
            filename=filename,
            blob_key=blob_key,
            size=len(payload),
            upload_date=datetime.now(timezone.utc),
            content_type=content_type,
            description=description or "",
            category=_or_default(category, DEFAULT_CATEGORY),
            uploader=_or_default(uploader, DEFAULT_UPLOADER),
        )
        try:
            url = await self.get_share_reference(record)
        except StorageReadError:
            logger.warning(f"Signing failed for {record.id}; blob {blob_key} is orphaned")
            raise
        try:
            await self.metadata_store.put(record)
        except MetadataWriteError:
            logger.warning(f"Metadata write failed for {record.id}; blob {blob_key} is orphaned")
            raise

        logger.info(f"Archived {filename} as {record.id} ({record.size} bytes)")
        return record, url

    async def delete_archive(self, archive_id: str) -> None:
        """Delete the blob first, then the record."""
        record = await self.get_archive(archive_id)

        # A failed blob delete raises here and leaves the record in place
        await self.blob_store.delete(record.blob_key)

        try:
            await self.metadata_store.delete(archive_id)
        except MetadataDeleteError:
            logger.warning(f"Blob {record.blob_key} deleted but record {archive_id} remains")
            raise

        logger.info(f"Deleted archive {archive_id} ({record.filename})")

    # ── Reads ────────────────────────────────────────────────────────

    async def get_archive(self, archive_id: str) -> ArchiveRecord:
        record = await self.metadata_store.get(archive_id)
        if record is None:
            raise NotFoundError(f"Archive {archive_id} not found")
        return record

    async def find_by_blob_key(self, blob_key: str) -> Optional[ArchiveRecord]:
        archives = await self.metadata_store.scan()
        return next((a for a in archives if a.blob_key == blob_key), None)

    async def list_archives(
        self,
        search: Optional[str] = None,
        category: Optional[str] = None,
        sort: Optional[str] = None,
    ) -> list[ArchiveRecord]:
        """Full scan, then search, category filter and sort in memory.

        Without a recognised sort key the store's scan order is returned as is.
        """
        archives = await self.metadata_store.scan()

        if search:
            needle = search.lower()
            archives = [
                a for a in archives
                if needle in a.filename.lower() or needle in a.description.lower()
            ]

        if category:
            archives = [a for a in archives if a.category == category]

        if sort == SORT_BY_DATE:
            archives.sort(key=lambda a: a.upload_date, reverse=True)
        elif sort == SORT_BY_FILENAME:
            archives.sort(key=_filename_sort_key)

        return archives

    async def get_stats(self) -> ArchiveStats:
        archives = await self.metadata_store.scan()
        return ArchiveStats(
            total_archives=len(archives),
            total_size=sum(a.size for a in archives),
            categories=len({a.category for a in archives}),
        )

    async def get_recent(self, limit: int = RECENT_LIMIT) -> list[ArchiveRecord]:
        """Newest first. Equal timestamps keep scan order."""
        if limit < 0:
            raise ValidationError("limit must not be negative")
        archives = await self.metadata_store.scan()
        return sorted(archives, key=lambda a: a.upload_date, reverse=True)[:limit]

    async def get_categories(self) -> list[str]:
        """Distinct categories in first-seen scan order."""
        archives = await self.metadata_store.scan()
        return list(dict.fromkeys(a.category for a in archives))

    async def export_all(self) -> list[ArchiveRecord]:
        return await self.metadata_store.scan()

    # ── Retrieval references ─────────────────────────────────────────

    async def get_download_reference(self, archive_id: str) -> str:
        """Short-lived signed URL for the record's blob."""
        record = await self.get_archive(archive_id)
        return await self.blob_store.signed_url(record.blob_key, self.download_ttl_seconds)

    async def get_share_reference(self, record: ArchiveRecord) -> str:
        """Long-lived signed URL, handed back to the uploader."""
        return await self.blob_store.signed_url(record.blob_key, self.share_ttl_seconds)
