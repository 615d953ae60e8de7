# homeledger/api/endpoints/containers.py
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Any, Optional
import uuid

from homeledger import crud, schemas
from homeledger.db.session import get_db, get_write_db

router = APIRouter()


@router.post("/", response_model=schemas.Container, status_code=status.HTTP_201_CREATED)
async def create_new_container(
    container_in: schemas.ContainerCreate,
    db: AsyncSession = Depends(get_write_db),
) -> Any:
    return await crud.container.create_container(db, container_in=container_in)


@router.get("/", response_model=List[schemas.ContainerSummary])
async def read_containers(
    room_id: Optional[uuid.UUID] = Query(None, description="Only containers in this room"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
) -> Any:
    containers = await crud.container.get_containers(db, room_id=room_id, skip=skip, limit=limit)
    return [crud.container.summarize(c) for c in containers]


@router.get("/{container_id}", response_model=schemas.Container)
async def read_container_by_id(container_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> Any:
    container = await crud.container.get_container(db, container_id)
    if not container:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Container not found")
    return container


@router.get("/{container_id}/summary", response_model=schemas.ContainerSummary)
async def read_container_summary(container_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> Any:
    container = await crud.container.get_container(db, container_id)
    if not container:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Container not found")
    return crud.container.summarize(container)


@router.put("/{container_id}", response_model=schemas.Container)
async def update_existing_container(
    container_id: uuid.UUID,
    container_in: schemas.ContainerUpdate,
    db: AsyncSession = Depends(get_write_db),
) -> Any:
    container = await crud.container.get_container(db, container_id)
    if not container:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Container not found")
    return await crud.container.update_container(db, db_obj=container, obj_in=container_in)


@router.delete("/{container_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_existing_container(container_id: uuid.UUID, db: AsyncSession = Depends(get_write_db)) -> None:
    container = await crud.container.get_container(db, container_id)
    if not container:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Container not found")
    await crud.container.delete_container(db, db_obj=container)
