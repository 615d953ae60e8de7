"""Contract for the external receipt recognizer.

Recognition itself happens outside this package; the ledger only defines what
it expects back and stores the result unchanged.
"""
import logging
import uuid
from typing import Optional, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from homeledger.crud import crud_receipt
from homeledger.models.receipt import Receipt as ReceiptModel
from homeledger.schemas.receipt import ReceiptData

logger = logging.getLogger(__name__)


class ReceiptRecognizer(Protocol):
    async def process_receipt(self, image_identifier: str) -> ReceiptData:
        ...


async def scan_receipt(
    db: AsyncSession,
    recognizer: ReceiptRecognizer,
    *,
    image_identifier: str,
    linked_item_id: Optional[uuid.UUID] = None,
) -> ReceiptModel:
    """Run the recognizer on one image and store what it returns."""
    data = await recognizer.process_receipt(image_identifier)
    logger.info(f"Recognizer returned confidence {data.confidence} for {image_identifier}")
    return await crud_receipt.create_receipt_from_ocr(
        db, image_identifier=image_identifier, data=data, linked_item_id=linked_item_id
    )
