# homeledger/api/endpoints/rooms.py
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Any, Optional
import uuid

from homeledger import crud, schemas
from homeledger.db.session import get_db, get_write_db

router = APIRouter()


@router.post("/", response_model=schemas.Room, status_code=status.HTTP_201_CREATED)
async def create_new_room(
    room_in: schemas.RoomCreate,
    db: AsyncSession = Depends(get_write_db),
) -> Any:
    return await crud.room.create_room(db, room_in=room_in)


@router.get("/", response_model=List[schemas.Room])
async def read_rooms(
    property_id: Optional[uuid.UUID] = Query(None, description="Only rooms of this property"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
) -> Any:
    return await crud.room.get_rooms(db, property_id=property_id, skip=skip, limit=limit)


@router.get("/{room_id}", response_model=schemas.Room)
async def read_room_by_id(room_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> Any:
    room = await crud.room.get_room(db, room_id)
    if not room:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found")
    return room


@router.get("/{room_id}/summary", response_model=schemas.RoomSummary)
async def read_room_summary(room_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> Any:
    room = await crud.room.get_room(db, room_id, with_subtree=True)
    if not room:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found")
    return crud.room.summarize(room)


@router.put("/{room_id}", response_model=schemas.Room)
async def update_existing_room(
    room_id: uuid.UUID,
    room_in: schemas.RoomUpdate,
    db: AsyncSession = Depends(get_write_db),
) -> Any:
    room = await crud.room.get_room(db, room_id)
    if not room:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found")
    return await crud.room.update_room(db, db_obj=room, obj_in=room_in)


@router.delete("/{room_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_existing_room(room_id: uuid.UUID, db: AsyncSession = Depends(get_write_db)) -> None:
    room = await crud.room.get_room(db, room_id)
    if not room:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found")
    if room.is_default:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Default rooms cannot be deleted.")
    await crud.room.delete_room(db, db_obj=room)
