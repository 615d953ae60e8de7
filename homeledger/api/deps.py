from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
import uuid

from homeledger import crud, models
from homeledger.core.config import Settings
from homeledger.db.session import Store, get_db, get_write_db, store_from_request
from homeledger.services.backup import BackupSerializer
from homeledger.services.photo_storage import PhotoStorage
from homeledger.services.restore import RestoreEngine


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> Store:
    return store_from_request(request)


def get_serializer(settings: Settings = Depends(get_settings)) -> BackupSerializer:
    return BackupSerializer(settings)


def get_photo_storage(request: Request) -> PhotoStorage:
    return request.app.state.photo_storage


def get_restore_engine(
    store: Store = Depends(get_store), settings: Settings = Depends(get_settings)
) -> RestoreEngine:
    return RestoreEngine(store, settings)


# --- Path lookups shared by read and write endpoints ---

async def _get_item_or_404(item_id: uuid.UUID, db: AsyncSession) -> models.Item:
    item = await crud.item.get_item(db, item_id=item_id)
    if not item:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found")
    return item


async def get_item_for_read(item_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> models.Item:
    return await _get_item_or_404(item_id, db)


async def get_item_for_write(item_id: uuid.UUID, db: AsyncSession = Depends(get_write_db)) -> models.Item:
    return await _get_item_or_404(item_id, db)
