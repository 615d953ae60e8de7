# homeledger/crud/crud_room.py
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
import logging
import uuid
from typing import List, Optional

from homeledger.crud import graph
from homeledger.models.property import Property as PropertyModel
from homeledger.models.room import Room as RoomModel, DEFAULT_ROOMS
from homeledger.schemas.room import RoomCreate, RoomUpdate, RoomSummary
from homeledger.services import scoring

logger = logging.getLogger(__name__)

SUBTREE = ("items", "containers.items")


async def get_room(db: AsyncSession, room_id: uuid.UUID, *, with_subtree: bool = False) -> Optional[RoomModel]:
    return await graph.get_entity(db, RoomModel, room_id, SUBTREE if with_subtree else ())


async def get_rooms(
    db: AsyncSession, *, property_id: Optional[uuid.UUID] = None, skip: int = 0, limit: int = 100,
    with_subtree: bool = False,
) -> List[RoomModel]:
    filters = {"property_id": property_id} if property_id is not None else None
    return await graph.list_entities(
        db, RoomModel,
        filters=filters,
        order_by=["sort_order", "name"],
        prefetch=SUBTREE if with_subtree else (),
        skip=skip, limit=limit,
    )


async def get_room_by_name(db: AsyncSession, *, name: str, property_id: Optional[uuid.UUID]) -> List[RoomModel]:
    query = select(RoomModel).filter(RoomModel.name == name)
    if property_id is None:
        query = query.filter(RoomModel.property_id.is_(None))
    else:
        query = query.filter(RoomModel.property_id == property_id)
    result = await db.execute(query)
    return list(result.scalars().all())


async def create_room(db: AsyncSession, *, room_in: RoomCreate) -> RoomModel:
    if room_in.property_id is not None:
        await graph.require_entity(db, PropertyModel, room_in.property_id)
    db_obj = RoomModel(**room_in.model_dump())
    db.add(db_obj)
    await db.commit()
    await db.refresh(db_obj)
    logger.info(f"Created room {db_obj.id} ('{db_obj.name}')")
    return db_obj


async def create_default_rooms(db: AsyncSession, *, property_id: Optional[uuid.UUID] = None) -> List[RoomModel]:
    rooms = []
    for sort_order, (name, icon_name) in enumerate(DEFAULT_ROOMS):
        db_obj = RoomModel(
            name=name, icon_name=icon_name, sort_order=sort_order,
            is_default=True, property_id=property_id,
        )
        db.add(db_obj)
        rooms.append(db_obj)
    await db.commit()
    return rooms


async def update_room(db: AsyncSession, *, db_obj: RoomModel, obj_in: RoomUpdate) -> RoomModel:
    update_data = obj_in.model_dump(exclude_unset=True)
    if update_data.get("property_id") is not None:
        await graph.require_entity(db, PropertyModel, update_data["property_id"])
    return await graph.apply_update(db, db_obj, update_data)


async def delete_room(db: AsyncSession, *, db_obj: RoomModel) -> None:
    """Deletes the room and its containers. Items stay, with room and container cleared."""
    await graph.delete_entity(db, db_obj)


def summarize(room: RoomModel) -> RoomSummary:
    """Needs SUBTREE loaded."""
    items = {item.id: item for item in room.items}
    for container in room.containers:
        items.update({item.id: item for item in container.items})
    totals = scoring.rollup(items.values())
    return RoomSummary(
        id=room.id,
        name=room.name,
        property_id=room.property_id,
        item_count=totals.item_count,
        total_value=totals.total_value,
        average_documentation_score=totals.average_score,
    )
