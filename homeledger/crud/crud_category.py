# homeledger/crud/crud_category.py
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import func
import logging
import uuid
from typing import List, Optional

from homeledger.crud import graph
from homeledger.models.category import Category as CategoryModel, DEFAULT_CATEGORIES
from homeledger.schemas.category import CategoryCreate, CategoryUpdate

logger = logging.getLogger(__name__)


async def get_category(db: AsyncSession, category_id: uuid.UUID) -> Optional[CategoryModel]:
    return await graph.get_entity(db, CategoryModel, category_id)


async def get_categories(db: AsyncSession, *, skip: int = 0, limit: int = 100) -> List[CategoryModel]:
    return await graph.list_entities(db, CategoryModel, order_by=["sort_order", "name"], skip=skip, limit=limit)


async def get_categories_by_name(db: AsyncSession, *, name: str) -> List[CategoryModel]:
    result = await db.execute(select(CategoryModel).filter(func.lower(CategoryModel.name) == name.lower()))
    return list(result.scalars().all())


async def create_category(db: AsyncSession, *, category_in: CategoryCreate) -> CategoryModel:
    db_obj = CategoryModel(**category_in.model_dump())
    db.add(db_obj)
    await db.commit()
    await db.refresh(db_obj)
    return db_obj


async def seed_default_categories(db: AsyncSession) -> int:
    """Insert the built-in categories into an empty table. Returns how many were added."""
    existing = await db.execute(select(func.count()).select_from(CategoryModel))
    if existing.scalar_one():
        return 0
    for sort_order, (name, icon_name, color_hex) in enumerate(DEFAULT_CATEGORIES):
        db.add(CategoryModel(
            name=name, icon_name=icon_name, color_hex=color_hex,
            is_custom=False, sort_order=sort_order,
        ))
    await db.commit()
    logger.info(f"Seeded {len(DEFAULT_CATEGORIES)} default categories")
    return len(DEFAULT_CATEGORIES)


async def update_category(db: AsyncSession, *, db_obj: CategoryModel, obj_in: CategoryUpdate) -> CategoryModel:
    return await graph.apply_update(db, db_obj, obj_in.model_dump(exclude_unset=True))


async def delete_category(db: AsyncSession, *, db_obj: CategoryModel) -> None:
    """Items in the category keep everything except their category link."""
    await graph.delete_entity(db, db_obj)
