# homeledger/api/endpoints/categories.py
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Any
import uuid

from homeledger import crud, schemas
from homeledger.db.session import get_db, get_write_db

router = APIRouter()


@router.post("/", response_model=schemas.Category, status_code=status.HTTP_201_CREATED)
async def create_new_category(
    category_in: schemas.CategoryCreate,
    db: AsyncSession = Depends(get_write_db),
) -> Any:
    return await crud.category.create_category(db, category_in=category_in)


@router.get("/", response_model=List[schemas.Category])
async def read_categories(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
) -> Any:
    return await crud.category.get_categories(db, skip=skip, limit=limit)


@router.put("/{category_id}", response_model=schemas.Category)
async def update_existing_category(
    category_id: uuid.UUID,
    category_in: schemas.CategoryUpdate,
    db: AsyncSession = Depends(get_write_db),
) -> Any:
    category = await crud.category.get_category(db, category_id)
    if not category:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
    return await crud.category.update_category(db, db_obj=category, obj_in=category_in)


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_existing_category(category_id: uuid.UUID, db: AsyncSession = Depends(get_write_db)) -> None:
    category = await crud.category.get_category(db, category_id)
    if not category:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
    await crud.category.delete_category(db, db_obj=category)
