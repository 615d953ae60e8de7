# homeledger/api/endpoints/backup.py
from fastapi import APIRouter, Depends, File, HTTPException, Query, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any
import asyncio
import logging

from homeledger.api import deps
from homeledger.core.config import Settings
from homeledger.db.session import get_db
from homeledger.schemas.restore import RestoreStrategy, RestoreSummary
from homeledger.services.backup import (
    BackupSerializer,
    ExportFormat,
    decode_snapshot,
    is_archive,
    open_archive,
    timestamped_filename,
)
from homeledger.services.photo_storage import PhotoStorage
from homeledger.services.restore import RestoreEngine

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/export")
async def export_backup(
    export_format: ExportFormat = Query(
        ExportFormat.JSON, alias="format", description="json (re-importable), zip (json plus photo files) or csv (items only)"
    ),
    db: AsyncSession = Depends(get_db),
    serializer: BackupSerializer = Depends(deps.get_serializer),
    photos: PhotoStorage = Depends(deps.get_photo_storage),
) -> Response:
    if export_format is ExportFormat.ZIP:
        content = await serializer.export_archive(db, photos)
    else:
        content = await serializer.export(db, export_format)
    filename = timestamped_filename(export_format)
    return Response(
        content=content,
        media_type=export_format.media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/restore", response_model=RestoreSummary)
async def restore_backup(
    strategy: RestoreStrategy = Query(..., description="merge or replace; there is no default"),
    file: UploadFile = File(..., description="A JSON snapshot or a ZIP backup archive"),
    engine: RestoreEngine = Depends(deps.get_restore_engine),
    settings: Settings = Depends(deps.get_settings),
    photos: PhotoStorage = Depends(deps.get_photo_storage),
) -> Any:
    raw = await file.read(settings.MAX_BACKUP_BYTES + 1)
    if len(raw) > settings.MAX_BACKUP_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Backup files are limited to {settings.MAX_BACKUP_BYTES} bytes.",
        )
    source = file.filename or "upload"
    logger.info(f"Restoring uploaded backup '{source}' with strategy {strategy.value}")
    if is_archive(raw):
        document, files = await asyncio.to_thread(open_archive, raw, source)
        return await engine.restore_bundle(document, files, strategy, photos)
    document = decode_snapshot(raw, source=source)
    return await engine.restore(document, strategy)
