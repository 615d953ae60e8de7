# homeledger/api/endpoints/tags.py
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Any
import uuid

from homeledger import crud, schemas
from homeledger.db.session import get_db, get_write_db

router = APIRouter()


@router.post("/", response_model=schemas.Tag, status_code=status.HTTP_201_CREATED)
async def create_new_tag(
    tag_in: schemas.TagCreate,
    db: AsyncSession = Depends(get_write_db),
) -> Any:
    return await crud.tag.create_tag(db, tag_in=tag_in)


@router.get("/", response_model=List[schemas.Tag])
async def read_tags(
    favorites_only: bool = Query(False),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
) -> Any:
    return await crud.tag.get_tags(db, favorites_only=favorites_only, skip=skip, limit=limit)


@router.put("/{tag_id}", response_model=schemas.Tag)
async def update_existing_tag(
    tag_id: uuid.UUID,
    tag_in: schemas.TagUpdate,
    db: AsyncSession = Depends(get_write_db),
) -> Any:
    tag = await crud.tag.get_tag(db, tag_id)
    if not tag:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tag not found")
    return await crud.tag.update_tag(db, db_obj=tag, obj_in=tag_in)


@router.delete("/{tag_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_existing_tag(tag_id: uuid.UUID, db: AsyncSession = Depends(get_write_db)) -> None:
    tag = await crud.tag.get_tag(db, tag_id)
    if not tag:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tag not found")
    await crud.tag.delete_tag(db, db_obj=tag)
