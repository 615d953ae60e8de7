# homeledger/api/endpoints/items.py
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Any, Optional
import uuid

from homeledger import crud, models, schemas
from homeledger.api import deps
from homeledger.core.config import Settings
from homeledger.db.session import get_db, get_write_db

router = APIRouter()


@router.post("/", response_model=schemas.Item, status_code=status.HTTP_201_CREATED)
async def create_new_item(
    item_in: schemas.ItemCreate,
    db: AsyncSession = Depends(get_write_db),
    settings: Settings = Depends(deps.get_settings),
) -> Any:
    if "currency_code" not in item_in.model_fields_set:
        item_in.currency_code = settings.DEFAULT_CURRENCY
    return await crud.item.create_item(db, item_in=item_in)


@router.get("/", response_model=List[schemas.ItemSummary])
async def read_items(
    room_id: Optional[uuid.UUID] = Query(None),
    container_id: Optional[uuid.UUID] = Query(None),
    category_id: Optional[uuid.UUID] = Query(None),
    condition: Optional[schemas.ItemCondition] = Query(None),
    search: Optional[str] = Query(None, description="Search term to filter items by name"),
    sort: str = Query("name", description="Any item field, e.g. purchase_price or created_at"),
    descending: bool = Query(False),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
) -> Any:
    filters = {
        name: value
        for name, value in (
            ("room_id", room_id), ("container_id", container_id),
            ("category_id", category_id), ("condition", condition),
        )
        if value is not None
    }
    return await crud.item.get_items(
        db, filters=filters, search=search, order_by=sort, descending=descending, skip=skip, limit=limit
    )


@router.get("/{item_id}", response_model=schemas.Item)
async def read_item_by_id(item: models.Item = Depends(deps.get_item_for_read)) -> Any:
    return item


@router.get("/{item_id}/documentation", response_model=schemas.DocumentationReport)
async def read_item_documentation(item: models.Item = Depends(deps.get_item_for_read)) -> Any:
    return crud.item.documentation_report(item)


@router.put("/{item_id}", response_model=schemas.Item)
async def update_existing_item(
    item_in: schemas.ItemUpdate,
    item: models.Item = Depends(deps.get_item_for_write),
    db: AsyncSession = Depends(get_write_db),
) -> Any:
    return await crud.item.update_item(db, db_obj=item, obj_in=item_in)


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_existing_item(
    item: models.Item = Depends(deps.get_item_for_write),
    db: AsyncSession = Depends(get_write_db),
) -> None:
    await crud.item.delete_item(db, db_obj=item)


# --- Photos ---

@router.post("/{item_id}/photos", response_model=schemas.ItemPhoto, status_code=status.HTTP_201_CREATED)
async def add_item_photo(
    photo_in: schemas.ItemPhotoCreate,
    item: models.Item = Depends(deps.get_item_for_write),
    db: AsyncSession = Depends(get_write_db),
) -> Any:
    return await crud.item.add_photo(db, db_obj=item, photo_in=photo_in)


@router.delete("/{item_id}/photos/{photo_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_item_photo(
    photo_id: uuid.UUID,
    item: models.Item = Depends(deps.get_item_for_write),
    db: AsyncSession = Depends(get_write_db),
) -> None:
    photo = await crud.item.get_photo(db, item_id=item.id, photo_id=photo_id)
    await crud.item.delete_photo(db, photo=photo)


# --- Tags ---

@router.post("/{item_id}/tags/{tag_id}", response_model=schemas.Item)
async def add_item_tag(
    tag_id: uuid.UUID,
    item: models.Item = Depends(deps.get_item_for_write),
    db: AsyncSession = Depends(get_write_db),
) -> Any:
    tag = await crud.tag.get_tag(db, tag_id)
    if not tag:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tag not found")
    return await crud.item.add_tag(db, db_obj=item, tag=tag)


@router.delete("/{item_id}/tags/{tag_id}", response_model=schemas.Item)
async def remove_item_tag(
    tag_id: uuid.UUID,
    item: models.Item = Depends(deps.get_item_for_write),
    db: AsyncSession = Depends(get_write_db),
) -> Any:
    tag = await crud.tag.get_tag(db, tag_id)
    if not tag:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tag not found")
    return await crud.item.remove_tag(db, db_obj=item, tag=tag)
