# homeledger/crud/crud_container.py
from sqlalchemy.ext.asyncio import AsyncSession
import logging
import uuid
from typing import List, Optional

from homeledger.crud import graph
from homeledger.models.container import Container as ContainerModel
from homeledger.models.room import Room as RoomModel
from homeledger.schemas.container import ContainerCreate, ContainerUpdate, ContainerSummary
from homeledger.services import scoring

logger = logging.getLogger(__name__)

# room.property is needed for the breadcrumb
PREFETCH = ("room.property", "items")


async def get_container(db: AsyncSession, container_id: uuid.UUID) -> Optional[ContainerModel]:
    return await graph.get_entity(db, ContainerModel, container_id, PREFETCH)


async def get_containers(
    db: AsyncSession, *, room_id: Optional[uuid.UUID] = None, skip: int = 0, limit: int = 100
) -> List[ContainerModel]:
    filters = {"room_id": room_id} if room_id is not None else None
    return await graph.list_entities(
        db, ContainerModel,
        filters=filters,
        order_by=["sort_order", "name"],
        prefetch=PREFETCH,
        skip=skip, limit=limit,
    )


async def create_container(db: AsyncSession, *, container_in: ContainerCreate) -> ContainerModel:
    if container_in.room_id is not None:
        await graph.require_entity(db, RoomModel, container_in.room_id)
    db_obj = ContainerModel(**container_in.model_dump())
    db.add(db_obj)
    await db.commit()
    logger.info(f"Created container {db_obj.id} ('{db_obj.name}')")
    # Re-fetch so room/property/items are loaded for breadcrumbs and rollups
    db.expunge(db_obj)
    return await get_container(db, db_obj.id)


async def update_container(db: AsyncSession, *, db_obj: ContainerModel, obj_in: ContainerUpdate) -> ContainerModel:
    update_data = obj_in.model_dump(exclude_unset=True)
    if update_data.get("room_id") is not None:
        await graph.require_entity(db, RoomModel, update_data["room_id"])
    await graph.apply_update(db, db_obj, update_data)
    db.expunge(db_obj)
    return await get_container(db, db_obj.id)


async def delete_container(db: AsyncSession, *, db_obj: ContainerModel) -> None:
    """Items in the container survive at room level."""
    await graph.delete_entity(db, db_obj)


def summarize(container: ContainerModel) -> ContainerSummary:
    totals = scoring.rollup(container.items)
    return ContainerSummary(
        id=container.id,
        name=container.name,
        breadcrumb=container.breadcrumb_path(),
        item_count=totals.item_count,
        total_value=totals.total_value,
        average_documentation_score=totals.average_score,
    )
