"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from file_archive import __version__
from file_archive.config import Settings, get_settings
from file_archive.dependencies import build_catalog
from file_archive.services.archive_catalog import ArchiveCatalogService

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).resolve().parent / "static"


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open store connections (and create tables) on startup, release on shutdown."""
    catalog: ArchiveCatalogService = app.state.catalog
    await catalog.startup()
    logger.info(
        f"Archive service ready (blob store: {type(catalog.blob_store).__name__}, "
        f"metadata store: {type(catalog.metadata_store).__name__})"
    )

    yield

    # Cleanup
    await catalog.shutdown()


def create_app(
    settings: Optional[Settings] = None,
    catalog: Optional[ArchiveCatalogService] = None,
) -> FastAPI:
    """Build the app. Settings are validated here, so bad config fails at startup."""
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title="File Archive API",
        version=__version__,
        description="Upload, catalog, search and download archived files.",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.catalog = catalog or build_catalog(settings)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        field = ".".join(str(part) for part in errors[0]["loc"][1:]) if errors else ""
        message = f"Invalid request: {field}" if field else "Invalid request"
        return JSONResponse(status_code=400, content={"error": message})

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    @app.get("/api/health")
    async def health_check():
        """Verify the API is up."""
        return {"status": "ok", "version": __version__}

    # Register routers
    from file_archive.routes.archives import router as archives_router
    from file_archive.routes.blobs import router as blobs_router
    app.include_router(archives_router)
    app.include_router(blobs_router)

    # Browser client, mounted last so API routes take precedence
    app.mount("/", StaticFiles(directory=STATIC_DIR, html=True), name="static")

    return app


def run() -> None:
    """Console entry point: serve the app with uvicorn on API_PORT."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.API_PORT)


if __name__ == "__main__":
    run()
