"""Store construction from settings, and the FastAPI dependency for routes.

Usage in routes:
    from file_archive.dependencies import get_catalog

    @router.get("/items")
    async def list_items(catalog: ArchiveCatalogService = Depends(get_catalog)):
        return await catalog.list_archives()
"""
from fastapi import Request

from file_archive.config import Settings
from file_archive.services.archive_catalog import ArchiveCatalogService
from file_archive.services.blob_store import BlobStore, LocalBlobStore, S3BlobStore
from file_archive.services.metadata_store import DynamoMetadataStore, MetadataStore, SqlMetadataStore


def build_blob_store(settings: Settings) -> BlobStore:
    if settings.BLOB_STORE_TYPE == "local":
        return LocalBlobStore(
            base_path=settings.BLOB_STORAGE_PATH,
            signing_secret=settings.BLOB_SIGNING_SECRET,
            public_base_url=settings.PUBLIC_BASE_URL,
        )
    elif settings.BLOB_STORE_TYPE == "s3":
        return S3BlobStore(
            bucket=settings.S3_BUCKET_NAME,
            region=settings.AWS_REGION,
            access_key_id=settings.AWS_ACCESS_KEY_ID,
            secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
            endpoint_url=settings.S3_ENDPOINT_URL,
        )
    raise ValueError(f"Unknown blob store type: {settings.BLOB_STORE_TYPE}")


def build_metadata_store(settings: Settings) -> MetadataStore:
    if settings.METADATA_STORE_TYPE == "sql":
        return SqlMetadataStore(settings.DATABASE_URL)
    elif settings.METADATA_STORE_TYPE == "dynamodb":
        return DynamoMetadataStore(
            table_name=settings.DYNAMODB_TABLE_NAME,
            region=settings.AWS_REGION,
            access_key_id=settings.AWS_ACCESS_KEY_ID,
            secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
        )
    raise ValueError(f"Unknown metadata store type: {settings.METADATA_STORE_TYPE}")


def build_catalog(settings: Settings) -> ArchiveCatalogService:
    """Construct both stores once at process start and wire them into the catalog."""
    return ArchiveCatalogService(
        blob_store=build_blob_store(settings),
        metadata_store=build_metadata_store(settings),
        download_ttl_seconds=settings.DOWNLOAD_URL_TTL_SECONDS,
        share_ttl_seconds=settings.SHARE_URL_TTL_SECONDS,
    )


def get_catalog(request: Request) -> ArchiveCatalogService:
    """FastAPI dependency that returns the app's catalog service."""
    return request.app.state.catalog
