import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from homeledger.api import api_router
from homeledger.core.config import Settings, get_settings
from homeledger.core.exceptions import (
    BackupFormatError,
    BackupIOError,
    EntityNotFoundError,
    EntityValidationError,
    IntegrityViolation,
    LedgerError,
    MigrationError,
    PhotoStorageError,
)
from homeledger.db.init_db import open_store
from homeledger.services.ocr import ReceiptRecognizer
from homeledger.services.photo_storage import LocalPhotoStorage, PhotoStorage

logger = logging.getLogger(__name__)

# Most specific first; the first isinstance match wins
ERROR_STATUS = (
    (EntityValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (EntityNotFoundError, status.HTTP_404_NOT_FOUND),
    (IntegrityViolation, status.HTTP_409_CONFLICT),
    (MigrationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (BackupFormatError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (BackupIOError, status.HTTP_400_BAD_REQUEST),
    (PhotoStorageError, status.HTTP_400_BAD_REQUEST),
)

origins = [
    "http://localhost:5173",  # Local UI dev server
    "http://localhost:3000",
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    # A MigrationError here stops startup; there is no partial-schema mode
    app.state.store = await open_store(settings, seed=settings.SEED_DEFAULTS)
    yield
    await app.state.store.dispose()
    app.state.store = None


async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    status_code = next(
        (code for error_type, code in ERROR_STATUS if isinstance(exc, error_type)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    if status_code >= 500:
        logger.error(f"Unhandled ledger error on {request.url.path}: {exc}")
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


def create_app(
    settings: Optional[Settings] = None,
    recognizer: Optional[ReceiptRecognizer] = None,
    photo_storage: Optional[PhotoStorage] = None,
) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(
        title=settings.PROJECT_NAME,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        version=settings.PROJECT_VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = None
    app.state.recognizer = recognizer
    app.state.photo_storage = photo_storage or LocalPhotoStorage(settings.photo_dir)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(LedgerError, ledger_error_handler)

    # Include the main API router
    app.include_router(api_router, prefix=settings.API_V1_STR)

    @app.get("/")
    async def read_root():
        return {"message": f"Welcome to {settings.PROJECT_NAME}!"}

    @app.get("/health", tags=["Health"])
    async def health_check(request: Request):
        """
        Health check endpoint.
        """
        if request.app.state.store is None:
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "unavailable", "message": "Ledger store is not open."},
            )
        return {"status": "ok", "message": f"{settings.PROJECT_NAME} is healthy!"}

    return app
