"""Archive API routes.

Pure translation between HTTP and the catalog service. Store failures come
back as a 500 with a short message; details only go to the log.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import JSONResponse, RedirectResponse

from file_archive.dependencies import get_catalog
from file_archive.errors import ArchiveError, NotFoundError, ValidationError
from file_archive.schemas.archive import (
    ArchiveRecord,
    ArchiveStats,
    ErrorResponse,
    MessageResponse,
    UploadResponse,
)
from file_archive.services.archive_catalog import ArchiveCatalogService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["archives"])


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


@router.post("/upload", response_model=UploadResponse)
async def upload_file(
    file: Optional[UploadFile] = File(None),
    filename: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    uploader: Optional[str] = Form(None),
    catalog: ArchiveCatalogService = Depends(get_catalog),
):
    """Upload a file and create its archive record.

    A non-blank `filename` field overrides the uploaded file's own name.
    """
    if file is None:
        return _error(400, "No file uploaded")

    contents = await file.read()
    display_name = filename if filename and filename.strip() else (file.filename or "")
    try:
        record, url = await catalog.create_archive(
            contents,
            display_name,
            file.content_type,
            description=description,
            category=category,
            uploader=uploader,
        )
    except ValidationError as e:
        return _error(400, str(e))
    except ArchiveError:
        logger.exception("Upload error")
        return _error(500, "Failed to upload file")

    return UploadResponse(message="File uploaded successfully", filename=record.filename, url=url)


@router.get("/archives", response_model=list[ArchiveRecord])
async def list_archives(
    search: Optional[str] = Query(None, description="Substring of filename or description"),
    category: Optional[str] = Query(None, description="Exact category"),
    sort: Optional[str] = Query(None, description="'date' or 'filename'"),
    catalog: ArchiveCatalogService = Depends(get_catalog),
):
    """List archives, optionally searched, filtered and sorted."""
    try:
        return await catalog.list_archives(search=search, category=category, sort=sort)
    except ArchiveError:
        logger.exception("List archives error")
        return _error(500, "Failed to retrieve archives")


@router.get("/archive/{archive_id}", response_model=ArchiveRecord)
async def get_archive(
    archive_id: str,
    catalog: ArchiveCatalogService = Depends(get_catalog),
):
    """Get a single archive record by ID."""
    try:
        return await catalog.get_archive(archive_id)
    except NotFoundError:
        return _error(404, "Archive not found")
    except ArchiveError:
        logger.exception("Get archive error")
        return _error(500, "Failed to retrieve archive")


@router.get("/stats", response_model=ArchiveStats)
async def get_stats(catalog: ArchiveCatalogService = Depends(get_catalog)):
    try:
        return await catalog.get_stats()
    except ArchiveError:
        logger.exception("Stats error")
        return _error(500, "Failed to retrieve stats")


@router.get("/recent", response_model=list[ArchiveRecord])
async def get_recent(catalog: ArchiveCatalogService = Depends(get_catalog)):
    """The five most recent uploads."""
    try:
        return await catalog.get_recent()
    except ArchiveError:
        logger.exception("Recent uploads error")
        return _error(500, "Failed to retrieve recent uploads")


@router.get("/categories", response_model=list[str])
async def get_categories(catalog: ArchiveCatalogService = Depends(get_catalog)):
    try:
        return await catalog.get_categories()
    except ArchiveError:
        logger.exception("Categories error")
        return _error(500, "Failed to retrieve categories")


@router.get("/export")
async def export_archives(catalog: ArchiveCatalogService = Depends(get_catalog)):
    """Download every archive record as a JSON attachment."""
    try:
        records = await catalog.export_all()
    except ArchiveError:
        logger.exception("Export error")
        return _error(500, "Failed to export data")

    return JSONResponse(
        content=[r.model_dump(mode="json", by_alias=True) for r in records],
        headers={"Content-Disposition": 'attachment; filename="archives.json"'},
    )


@router.get("/download/{archive_id}")
async def download_file(
    archive_id: str,
    catalog: ArchiveCatalogService = Depends(get_catalog),
):
    """Redirect to a short-lived signed URL for the archive's bytes."""
    try:
        url = await catalog.get_download_reference(archive_id)
    except NotFoundError:
        return _error(404, "Archive not found")
    except ArchiveError:
        logger.exception("Download error")
        return _error(500, "Failed to download file")
    return RedirectResponse(url, status_code=302)


@router.delete("/archive/{archive_id}", response_model=MessageResponse)
async def delete_archive(
    archive_id: str,
    catalog: ArchiveCatalogService = Depends(get_catalog),
):
    """Delete an archive's blob and then its record."""
    try:
        await catalog.delete_archive(archive_id)
    except NotFoundError:
        return _error(404, "Archive not found")
    except ArchiveError:
        logger.exception("Delete error")
        return _error(500, "Failed to delete archive")
    return MessageResponse(message="Archive deleted successfully")
