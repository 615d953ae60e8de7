# homeledger/crud/crud_item.py
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import func
import logging
import uuid
from typing import Any, Dict, List, Optional

from homeledger.core.exceptions import EntityNotFoundError
from homeledger.crud import graph
from homeledger.crud.crud_tag import get_tags_by_ids
from homeledger.models.category import Category as CategoryModel
from homeledger.models.container import Container as ContainerModel
from homeledger.models.item import Item as ItemModel
from homeledger.models.item_photo import ItemPhoto as ItemPhotoModel
from homeledger.models.room import Room as RoomModel
from homeledger.models.tag import Tag as TagModel
from homeledger.schemas.item import ItemCreate, ItemUpdate, ItemPhotoCreate, DocumentationReport
from homeledger.services import scoring

logger = logging.getLogger(__name__)

# photos, receipts and tag_objects are selectin-loaded with every item
_RELATIONSHIPS = ["photos", "receipts", "tag_objects"]


async def get_item(db: AsyncSession, item_id: uuid.UUID) -> Optional[ItemModel]:
    return await graph.get_entity(db, ItemModel, item_id)


async def get_items(
    db: AsyncSession,
    *,
    filters: Optional[Dict[str, Any]] = None,
    search: Optional[str] = None,
    order_by: str = "name",
    descending: bool = False,
    skip: int = 0,
    limit: int = 100,
) -> List[ItemModel]:
    """
    Items filtered by equality on any column (room_id, container_id, condition, ...),
    optionally narrowed by a case-insensitive name search.
    """
    where = [ItemModel.name.ilike(f"%{search}%")] if search else []
    return await graph.list_entities(
        db, ItemModel,
        filters=filters, where=where,
        order_by=order_by, descending=descending,
        skip=skip, limit=limit,
    )


async def get_items_by_natural_key(
    db: AsyncSession, *, name: str, serial_number: Optional[str], purchase_date
) -> List[ItemModel]:
    """Candidates for merge matching: name + serial + purchase date, or name alone when both are empty."""
    query = select(ItemModel).filter(ItemModel.name == name)
    if serial_number or purchase_date is not None:
        query = query.filter(
            ItemModel.serial_number.is_(None) if not serial_number else ItemModel.serial_number == serial_number
        )
        query = query.filter(
            ItemModel.purchase_date.is_(None) if purchase_date is None else ItemModel.purchase_date == purchase_date
        )
    result = await db.execute(query)
    return list(result.scalars().all())


async def _resolve_links(db: AsyncSession, data: Dict[str, Any]) -> None:
    """Check that referenced rows exist; an item placed in a container inherits its room."""
    if data.get("category_id") is not None:
        await graph.require_entity(db, CategoryModel, data["category_id"])
    if data.get("room_id") is not None:
        await graph.require_entity(db, RoomModel, data["room_id"])
    if data.get("container_id") is not None:
        container = await graph.require_entity(db, ContainerModel, data["container_id"])
        if data.get("room_id") is None and container.room_id is not None:
            data["room_id"] = container.room_id


async def create_item(db: AsyncSession, *, item_in: ItemCreate) -> ItemModel:
    data = item_in.model_dump(exclude={"tag_ids"})
    await _resolve_links(db, data)
    tags = await get_tags_by_ids(db, item_in.tag_ids)

    db_obj = ItemModel(**data)
    db_obj.tag_objects = tags
    db.add(db_obj)
    await db.commit()
    await db.refresh(db_obj, attribute_names=_RELATIONSHIPS)
    logger.info(f"Created item {db_obj.id} ('{db_obj.name}')")
    return db_obj


async def update_item(db: AsyncSession, *, db_obj: ItemModel, obj_in: ItemUpdate) -> ItemModel:
    """Validate links and tags first, then assign the whole patch in one commit."""
    update_data = obj_in.model_dump(exclude_unset=True)
    tag_ids = update_data.pop("tag_ids", None)
    await _resolve_links(db, update_data)
    tags = await get_tags_by_ids(db, tag_ids) if tag_ids is not None else None

    for field, value in update_data.items():
        setattr(db_obj, field, value)
    if tags is not None:
        db_obj.tag_objects = tags
    db_obj.touch()
    await db.commit()
    await db.refresh(db_obj)
    await db.refresh(db_obj, attribute_names=_RELATIONSHIPS)
    return db_obj


async def delete_item(db: AsyncSession, *, db_obj: ItemModel) -> None:
    """Photos go with the item; receipts are unlinked and kept."""
    await graph.delete_entity(db, db_obj)


# --- Photos ---

async def add_photo(db: AsyncSession, *, db_obj: ItemModel, photo_in: ItemPhotoCreate) -> ItemPhotoModel:
    photo = ItemPhotoModel(item_id=db_obj.id, **photo_in.model_dump())
    if photo_in.sort_order == 0 and db_obj.photos:
        result = await db.execute(
            select(func.max(ItemPhotoModel.sort_order)).filter(ItemPhotoModel.item_id == db_obj.id)
        )
        photo.sort_order = (result.scalar() or 0) + 1
    if photo.is_primary:
        for existing in db_obj.photos:
            existing.is_primary = False
    db.add(photo)
    db_obj.touch()
    await db.commit()
    await db.refresh(photo)
    await db.refresh(db_obj, attribute_names=["photos"])
    return photo


async def get_photo(db: AsyncSession, *, item_id: uuid.UUID, photo_id: uuid.UUID) -> ItemPhotoModel:
    result = await db.execute(
        select(ItemPhotoModel).filter(ItemPhotoModel.id == photo_id, ItemPhotoModel.item_id == item_id)
    )
    photo = result.scalars().first()
    if photo is None:
        raise EntityNotFoundError("ItemPhoto", photo_id)
    return photo


async def delete_photo(db: AsyncSession, *, photo: ItemPhotoModel) -> None:
    await graph.delete_entity(db, photo)


# --- Tags ---

async def add_tag(db: AsyncSession, *, db_obj: ItemModel, tag: TagModel) -> ItemModel:
    if tag not in db_obj.tag_objects:
        db_obj.tag_objects.append(tag)
        db_obj.touch()
        await db.commit()
        await db.refresh(db_obj, attribute_names=["tag_objects"])
    return db_obj


async def remove_tag(db: AsyncSession, *, db_obj: ItemModel, tag: TagModel) -> ItemModel:
    if tag in db_obj.tag_objects:
        db_obj.tag_objects.remove(tag)
        db_obj.touch()
        await db.commit()
        await db.refresh(db_obj, attribute_names=["tag_objects"])
    return db_obj


def documentation_report(item: ItemModel) -> DocumentationReport:
    result = scoring.score(item)
    return DocumentationReport(
        item_id=item.id,
        score=result.value,
        missing=result.missing,
        is_documented=scoring.is_documented(item),
    )
