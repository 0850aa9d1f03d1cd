"""
Shared fixtures for the archive service tests.

Provides in-memory blob and metadata stores that honour the store contracts,
with switches to make individual operations fail, plus a catalog and an
HTTP client wired to them.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from file_archive.config import Settings
from file_archive.errors import (
    MetadataDeleteError,
    MetadataReadError,
    MetadataWriteError,
    StorageDeleteError,
    StorageReadError,
    StorageWriteError,
)
from file_archive.main import create_app
from file_archive.schemas.archive import ArchiveRecord
from file_archive.services.archive_catalog import ArchiveCatalogService
from file_archive.services.blob_store import BlobStore
from file_archive.services.metadata_store import MetadataStore

BASE_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


# =============================================================================
# IN-MEMORY STORES
# =============================================================================


class InMemoryBlobStore(BlobStore):
    """Blob store backed by a dict. Records the order of calls."""

    def __init__(self):
        self.blobs: Dict[str, tuple[bytes, str, str]] = {}
        self.calls: list[tuple[str, str]] = []
        self.fail_put = False
        self.fail_delete = False
        self.fail_sign = False

    async def put(self, key, data, content_type, access="private"):
        self.calls.append(("blob.put", key))
        if self.fail_put:
            raise StorageWriteError("simulated put failure")
        self.blobs[key] = (data, content_type, access)
        return f"mem://{key}"

    async def delete(self, key):
        self.calls.append(("blob.delete", key))
        if self.fail_delete:
            raise StorageDeleteError("simulated delete failure")
        self.blobs.pop(key, None)

    async def signed_url(self, key, ttl_seconds):
        if self.fail_sign:
            raise StorageReadError("simulated signing failure")
        return f"https://blobs.test/{key}?ttl={ttl_seconds}"


class InMemoryMetadataStore(MetadataStore):
    """Metadata store backed by an insertion-ordered dict."""

    def __init__(self, calls: Optional[list] = None):
        self.records: Dict[str, ArchiveRecord] = {}
        self.calls = calls if calls is not None else []
        self.fail_put = False
        self.fail_delete = False
        self.fail_scan = False

    async def put(self, record):
        self.calls.append(("meta.put", record.id))
        if self.fail_put:
            raise MetadataWriteError("simulated put failure")
        self.records[record.id] = record

    async def get(self, archive_id):
        return self.records.get(archive_id)

    async def scan(self):
        if self.fail_scan:
            raise MetadataReadError("simulated scan failure")
        return list(self.records.values())

    async def delete(self, archive_id):
        self.calls.append(("meta.delete", archive_id))
        if self.fail_delete:
            raise MetadataDeleteError("simulated delete failure")
        self.records.pop(archive_id, None)


def make_record(
    filename: str,
    size: int = 10,
    category: str = "Uncategorized",
    description: str = "",
    minutes: int = 0,
    **overrides,
) -> ArchiveRecord:
    """Build a record with an upload date `minutes` after BASE_TIME."""
    fields = dict(
        id=str(uuid.uuid4()),
        filename=filename,
        blob_key=f"{uuid.uuid4()}-{filename}",
        size=size,
        upload_date=BASE_TIME + timedelta(minutes=minutes),
        content_type="text/plain",
        description=description,
        category=category,
        uploader="Anonymous",
    )
    fields.update(overrides)
    return ArchiveRecord(**fields)


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def blob_store() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def metadata_store(blob_store) -> InMemoryMetadataStore:
    # Share the call log so tests can assert cross-store ordering
    return InMemoryMetadataStore(calls=blob_store.calls)


@pytest.fixture
def catalog(blob_store, metadata_store) -> ArchiveCatalogService:
    return ArchiveCatalogService(
        blob_store=blob_store,
        metadata_store=metadata_store,
        download_ttl_seconds=300,
        share_ttl_seconds=604800,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        BLOB_STORE_TYPE="local",
        BLOB_SIGNING_SECRET="test-secret",
        METADATA_STORE_TYPE="sql",
    )


@pytest.fixture
def app(settings, catalog):
    return create_app(settings=settings, catalog=catalog)


@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
