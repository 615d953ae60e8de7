"""Entity-graph operations shared by the per-entity CRUD modules.

Cascade and nullify rules live on the model relationships; ``delete_entity``
lets the ORM walk them in one flush and then checks that no row is left
pointing at a parent that no longer exists before committing.
"""
import logging
import uuid
from typing import Any, Dict, Iterable, List, Optional, Sequence, Type, Union

from sqlalchemy import func, inspect, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from homeledger.core.exceptions import EntityNotFoundError, EntityValidationError, IntegrityViolation
from homeledger.db.base_class import Base

logger = logging.getLogger(__name__)


def _column(model, field: str):
    columns = inspect(model).columns
    if field not in columns:
        raise EntityValidationError(field, f"{model.__name__} has no field '{field}'")
    return getattr(model, field)


def prefetch_option(model, path: str):
    """selectinload chain for a dotted relationship path, e.g. 'rooms.containers.items'."""
    option = None
    current = model
    for name in path.split("."):
        relationships = inspect(current).relationships
        if name not in relationships:
            raise EntityValidationError(path, f"{current.__name__} has no relationship '{name}'")
        attribute = getattr(current, name)
        option = selectinload(attribute) if option is None else option.selectinload(attribute)
        current = relationships[name].mapper.class_
    return option


async def list_entities(
    db: AsyncSession,
    model: Type[Base],
    *,
    filters: Optional[Dict[str, Any]] = None,
    order_by: Union[str, Sequence[str], None] = None,
    descending: bool = False,
    prefetch: Iterable[str] = (),
    where: Iterable[Any] = (),
    skip: int = 0,
    limit: Optional[int] = None,
) -> List[Any]:
    """Fetch with equality filters, sorting on any column and eager prefetch.

    ``where`` takes extra SQL expressions for anything beyond equality. Each
    prefetch path costs one extra query per level no matter how many rows
    are loaded.
    """
    query = select(model)
    for clause in where:
        query = query.where(clause)
    for field, value in (filters or {}).items():
        column = _column(model, field)
        query = query.where(column.is_(None) if value is None else column == value)

    if isinstance(order_by, str):
        order_by = [order_by]
    for field in order_by or []:
        column = _column(model, field)
        query = query.order_by(column.desc() if descending else column.asc())

    for path in prefetch:
        query = query.options(prefetch_option(model, path))

    query = query.offset(skip)
    if limit is not None:
        query = query.limit(limit)
    result = await db.execute(query)
    return list(result.scalars().unique().all())


async def get_entity(db: AsyncSession, model: Type[Base], entity_id: uuid.UUID, prefetch: Iterable[str] = ()):
    query = select(model).where(model.id == entity_id)
    for path in prefetch:
        query = query.options(prefetch_option(model, path))
    result = await db.execute(query)
    return result.scalars().first()


async def require_entity(db: AsyncSession, model: Type[Base], entity_id: uuid.UUID, prefetch: Iterable[str] = ()):
    """Like get_entity, but a missing row is an error."""
    obj = await get_entity(db, model, entity_id, prefetch)
    if obj is None:
        raise EntityNotFoundError(model.__name__, entity_id)
    return obj


async def find_orphans(db: AsyncSession) -> List[str]:
    """Every foreign key whose value points at a row that does not exist."""
    problems = []
    for table in Base.metadata.sorted_tables:
        for fk in table.foreign_keys:
            child, parent = fk.parent, fk.column
            dangling = select(func.count()).select_from(table).where(
                child.is_not(None),
                ~select(parent).where(parent == child).exists(),
            )
            count = (await db.execute(dangling)).scalar_one()
            if count:
                problems.append(f"{count} row(s) in {table.name}.{child.name} reference a missing {parent.table.name}")
    return problems


async def delete_entity(db: AsyncSession, db_obj: Base) -> None:
    """Delete ``db_obj`` with its cascade and nullify rules, all or nothing."""
    label = f"{type(db_obj).__name__} {db_obj.id}"
    try:
        await db.delete(db_obj)
        await db.flush()
        orphans = await find_orphans(db)
        if orphans:
            logger.error(f"Integrity sweep failed after deleting {label}: {orphans}")
            raise IntegrityViolation(f"Deleting {label} left orphans: {'; '.join(orphans)}")
        await db.commit()
    except BaseException:
        await db.rollback()
        raise
    logger.info(f"Deleted {label}")


async def apply_update(db: AsyncSession, db_obj: Base, update_data: Dict[str, Any]) -> Base:
    """Assign an already-validated patch, bump updated_at and commit."""
    for field, value in update_data.items():
        setattr(db_obj, field, value)
    db_obj.touch()
    await db.commit()
    await db.refresh(db_obj)
    return db_obj
