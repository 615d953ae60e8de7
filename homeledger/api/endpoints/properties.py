# homeledger/api/endpoints/properties.py
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Any
import uuid

from homeledger import crud, schemas
from homeledger.db.session import get_db, get_write_db

router = APIRouter()


@router.post("/", response_model=schemas.Property, status_code=status.HTTP_201_CREATED)
async def create_new_property(
    property_in: schemas.PropertyCreate,
    db: AsyncSession = Depends(get_write_db),
) -> Any:
    return await crud.property.create_property(db, property_in=property_in)


@router.get("/", response_model=List[schemas.PropertySummary])
async def read_properties(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
) -> Any:
    properties = await crud.property.get_properties(db, skip=skip, limit=limit, with_subtree=True)
    return [crud.property.summarize(p) for p in properties]


@router.get("/{property_id}", response_model=schemas.Property)
async def read_property_by_id(
    property_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> Any:
    property_obj = await crud.property.get_property(db, property_id)
    if not property_obj:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")
    return property_obj


@router.get("/{property_id}/summary", response_model=schemas.PropertySummary)
async def read_property_summary(
    property_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> Any:
    property_obj = await crud.property.get_property(db, property_id, with_subtree=True)
    if not property_obj:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")
    return crud.property.summarize(property_obj)


@router.put("/{property_id}", response_model=schemas.Property)
async def update_existing_property(
    property_id: uuid.UUID,
    property_in: schemas.PropertyUpdate,
    db: AsyncSession = Depends(get_write_db),
) -> Any:
    property_obj = await crud.property.get_property(db, property_id)
    if not property_obj:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")
    return await crud.property.update_property(db, db_obj=property_obj, obj_in=property_in)


@router.delete("/{property_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_existing_property(
    property_id: uuid.UUID,
    db: AsyncSession = Depends(get_write_db),
) -> None:
    property_obj = await crud.property.get_property(db, property_id)
    if not property_obj:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")
    await crud.property.delete_property(db, db_obj=property_obj)
