# homeledger/crud/crud_receipt.py
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
import logging
import uuid
from typing import List, Optional

from homeledger.crud import graph
from homeledger.models.item import Item as ItemModel
from homeledger.models.receipt import Receipt as ReceiptModel
from homeledger.schemas.receipt import ReceiptCreate, ReceiptUpdate, ReceiptData

logger = logging.getLogger(__name__)


async def get_receipt(db: AsyncSession, receipt_id: uuid.UUID) -> Optional[ReceiptModel]:
    return await graph.get_entity(db, ReceiptModel, receipt_id)


async def get_receipts(
    db: AsyncSession, *, linked_item_id: Optional[uuid.UUID] = None, unlinked_only: bool = False,
    skip: int = 0, limit: int = 100,
) -> List[ReceiptModel]:
    filters = None
    if unlinked_only:
        filters = {"linked_item_id": None}
    elif linked_item_id is not None:
        filters = {"linked_item_id": linked_item_id}
    return await graph.list_entities(
        db, ReceiptModel, filters=filters, order_by="created_at", descending=True, skip=skip, limit=limit
    )


async def get_receipts_by_image(db: AsyncSession, *, image_identifier: str) -> List[ReceiptModel]:
    result = await db.execute(select(ReceiptModel).filter(ReceiptModel.image_identifier == image_identifier))
    return list(result.scalars().all())


async def create_receipt(db: AsyncSession, *, receipt_in: ReceiptCreate) -> ReceiptModel:
    if receipt_in.linked_item_id is not None:
        await graph.require_entity(db, ItemModel, receipt_in.linked_item_id)
    db_obj = ReceiptModel(**receipt_in.model_dump())
    db.add(db_obj)
    await db.commit()
    await db.refresh(db_obj)
    return db_obj


async def create_receipt_from_ocr(
    db: AsyncSession, *, image_identifier: str, data: ReceiptData, linked_item_id: Optional[uuid.UUID] = None
) -> ReceiptModel:
    """Store a recognizer result as-is. Confidence is not clamped or checked."""
    receipt_in = ReceiptCreate(
        image_identifier=image_identifier,
        linked_item_id=linked_item_id,
        **data.model_dump(),
    )
    db_obj = await create_receipt(db, receipt_in=receipt_in)
    logger.info(f"Stored OCR receipt {db_obj.id} (vendor={data.vendor!r}, confidence={data.confidence})")
    return db_obj


async def update_receipt(db: AsyncSession, *, db_obj: ReceiptModel, obj_in: ReceiptUpdate) -> ReceiptModel:
    update_data = obj_in.model_dump(exclude_unset=True)
    if update_data.get("linked_item_id") is not None:
        await graph.require_entity(db, ItemModel, update_data["linked_item_id"])
    return await graph.apply_update(db, db_obj, update_data)


async def delete_receipt(db: AsyncSession, *, db_obj: ReceiptModel) -> None:
    await graph.delete_entity(db, db_obj)
