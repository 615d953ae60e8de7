# homeledger/crud/crud_property.py
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
import logging
import uuid
from typing import List, Optional

from homeledger.crud import graph
from homeledger.models.property import (
    Property as PropertyModel,
    DEFAULT_PROPERTY_NAME,
    DEFAULT_PROPERTY_ICON,
    DEFAULT_PROPERTY_COLOR,
)
from homeledger.schemas.property import PropertyCreate, PropertyUpdate, PropertySummary
from homeledger.services import scoring

logger = logging.getLogger(__name__)

# Loads every item under a property, directly in a room or inside a container
SUBTREE = ("rooms.items", "rooms.containers.items")


async def get_property(db: AsyncSession, property_id: uuid.UUID, *, with_subtree: bool = False) -> Optional[PropertyModel]:
    return await graph.get_entity(db, PropertyModel, property_id, SUBTREE if with_subtree else ())


async def get_properties(db: AsyncSession, *, skip: int = 0, limit: int = 100, with_subtree: bool = False) -> List[PropertyModel]:
    return await graph.list_entities(
        db, PropertyModel,
        order_by=["sort_order", "name"],
        prefetch=SUBTREE if with_subtree else (),
        skip=skip, limit=limit,
    )


async def get_default_property(db: AsyncSession) -> Optional[PropertyModel]:
    result = await db.execute(
        select(PropertyModel)
        .filter(PropertyModel.is_default.is_(True))
        .order_by(PropertyModel.sort_order, PropertyModel.created_at)
    )
    return result.scalars().first()


async def create_property(db: AsyncSession, *, property_in: PropertyCreate) -> PropertyModel:
    db_obj = PropertyModel(**property_in.model_dump())
    db.add(db_obj)
    await db.commit()
    await db.refresh(db_obj)
    logger.info(f"Created property {db_obj.id} ('{db_obj.name}')")
    return db_obj


async def create_default_property(db: AsyncSession) -> PropertyModel:
    """'My Home', marked as the default property."""
    return await create_property(db, property_in=PropertyCreate(
        name=DEFAULT_PROPERTY_NAME,
        icon_name=DEFAULT_PROPERTY_ICON,
        color_hex=DEFAULT_PROPERTY_COLOR,
        is_default=True,
    ))


async def update_property(db: AsyncSession, *, db_obj: PropertyModel, obj_in: PropertyUpdate) -> PropertyModel:
    return await graph.apply_update(db, db_obj, obj_in.model_dump(exclude_unset=True))


async def delete_property(db: AsyncSession, *, db_obj: PropertyModel) -> None:
    """Deletes the property with its rooms and their containers; items lose those links."""
    await graph.delete_entity(db, db_obj)


def items_under(property_obj: PropertyModel) -> list:
    """Every item in the property's rooms and containers; needs SUBTREE loaded."""
    seen = {}
    for room in property_obj.rooms:
        for item in room.items:
            seen[item.id] = item
        for container in room.containers:
            for item in container.items:
                seen[item.id] = item
    return list(seen.values())


def summarize(property_obj: PropertyModel) -> PropertySummary:
    totals = scoring.rollup(items_under(property_obj))
    return PropertySummary(
        id=property_obj.id,
        name=property_obj.name,
        is_default=property_obj.is_default,
        room_count=len(property_obj.rooms),
        item_count=totals.item_count,
        total_value=totals.total_value,
        average_documentation_score=totals.average_score,
    )
