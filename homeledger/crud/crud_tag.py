# homeledger/crud/crud_tag.py
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import func
import logging
import uuid
from typing import Iterable, List, Optional

from homeledger.core.exceptions import EntityNotFoundError, EntityValidationError
from homeledger.crud import graph
from homeledger.models.tag import Tag as TagModel, DEFAULT_FAVORITE_TAGS
from homeledger.schemas.tag import TagCreate, TagUpdate

logger = logging.getLogger(__name__)


async def get_tag(db: AsyncSession, tag_id: uuid.UUID) -> Optional[TagModel]:
    return await graph.get_entity(db, TagModel, tag_id)


async def get_tags(
    db: AsyncSession, *, favorites_only: bool = False, skip: int = 0, limit: int = 100
) -> List[TagModel]:
    filters = {"is_favorite": True} if favorites_only else None
    return await graph.list_entities(db, TagModel, filters=filters, order_by="name", skip=skip, limit=limit)


async def get_tag_by_name(db: AsyncSession, *, name: str) -> Optional[TagModel]:
    """Case-insensitive lookup."""
    result = await db.execute(select(TagModel).filter(func.lower(TagModel.name) == name.strip().lower()))
    return result.scalars().first()


async def get_tags_by_ids(db: AsyncSession, tag_ids: Iterable[uuid.UUID]) -> List[TagModel]:
    tag_ids = list(dict.fromkeys(tag_ids))
    if not tag_ids:
        return []
    result = await db.execute(select(TagModel).filter(TagModel.id.in_(tag_ids)))
    tags = {tag.id: tag for tag in result.scalars().all()}
    for tag_id in tag_ids:
        if tag_id not in tags:
            raise EntityNotFoundError("Tag", tag_id)
    return [tags[tag_id] for tag_id in tag_ids]


async def _check_unique_name(db: AsyncSession, name: str, exclude_id: Optional[uuid.UUID] = None) -> None:
    existing = await get_tag_by_name(db, name=name)
    if existing is not None and existing.id != exclude_id:
        raise EntityValidationError("name", f"a tag named '{existing.name}' already exists")


async def create_tag(db: AsyncSession, *, tag_in: TagCreate) -> TagModel:
    await _check_unique_name(db, tag_in.name)
    db_obj = TagModel(**tag_in.model_dump())
    db.add(db_obj)
    await db.commit()
    await db.refresh(db_obj)
    return db_obj


async def seed_favorite_tags(db: AsyncSession) -> int:
    """Add the built-in favorite tags that are not already present (by name)."""
    added = 0
    for name, color_hex in DEFAULT_FAVORITE_TAGS:
        if await get_tag_by_name(db, name=name) is None:
            db.add(TagModel(name=name, color_hex=color_hex, is_favorite=True))
            added += 1
    await db.commit()
    if added:
        logger.info(f"Seeded {added} favorite tags")
    return added


async def update_tag(db: AsyncSession, *, db_obj: TagModel, obj_in: TagUpdate) -> TagModel:
    update_data = obj_in.model_dump(exclude_unset=True)
    if "name" in update_data:
        await _check_unique_name(db, update_data["name"], exclude_id=db_obj.id)
    return await graph.apply_update(db, db_obj, update_data)


async def delete_tag(db: AsyncSession, *, db_obj: TagModel) -> None:
    """Removes the tag from every item; the items themselves are untouched."""
    await graph.delete_entity(db, db_obj)
