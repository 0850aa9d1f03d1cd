"""Signed blob retrieval for the local blob store.

S3 signed URLs point straight at the bucket; only local blobs are served
by the app itself.
"""
import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import FileResponse, JSONResponse

from file_archive.dependencies import get_catalog
from file_archive.errors import MetadataError, NotFoundError, SignatureError, StorageReadError
from file_archive.schemas.archive import ErrorResponse
from file_archive.services.archive_catalog import ArchiveCatalogService
from file_archive.services.blob_store import LocalBlobStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/blobs", tags=["blobs"])


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


@router.get("/{key:path}")
async def read_blob(
    key: str,
    expires: int = Query(...),
    signature: str = Query(...),
    catalog: ArchiveCatalogService = Depends(get_catalog),
):
    """Stream a blob if the signature is valid and not expired.

    Served inline with the record's stored content type and filename, the
    same way S3 returns an object's ContentType.
    """
    store = catalog.blob_store
    if not isinstance(store, LocalBlobStore):
        return _error(404, "Not found")
    try:
        path = store.verify(key, expires, signature)
    except SignatureError:
        return _error(403, "Invalid or expired link")
    except NotFoundError:
        return _error(404, "File not found")
    except StorageReadError:
        return _error(400, "Invalid blob key")

    try:
        record = await catalog.find_by_blob_key(key)
    except MetadataError:
        logger.exception("Blob lookup error")
        return _error(500, "Failed to download file")
    if record is None:
        return FileResponse(path)
    return FileResponse(
        path,
        media_type=record.content_type,
        filename=record.filename,
        content_disposition_type="inline",
    )
