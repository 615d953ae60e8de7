# homeledger/api/endpoints/receipts.py
from fastapi import APIRouter, Depends, HTTPException, Request, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from pydantic import BaseModel
from typing import List, Any, Optional
import uuid

from homeledger import crud, schemas
from homeledger.db.session import get_db, get_write_db
from homeledger.services import ocr

router = APIRouter()


class ReceiptScanRequest(BaseModel):
    image_identifier: str
    linked_item_id: Optional[uuid.UUID] = None


@router.post("/", response_model=schemas.Receipt, status_code=status.HTTP_201_CREATED)
async def create_new_receipt(
    receipt_in: schemas.ReceiptCreate,
    db: AsyncSession = Depends(get_write_db),
) -> Any:
    return await crud.receipt.create_receipt(db, receipt_in=receipt_in)


@router.post("/scan", response_model=schemas.Receipt, status_code=status.HTTP_201_CREATED)
async def scan_new_receipt(
    scan_in: ReceiptScanRequest,
    request: Request,
    db: AsyncSession = Depends(get_write_db),
) -> Any:
    """Run the configured receipt recognizer on an image and store the result."""
    recognizer = getattr(request.app.state, "recognizer", None)
    if recognizer is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="No receipt recognizer is configured.")
    return await ocr.scan_receipt(
        db, recognizer, image_identifier=scan_in.image_identifier, linked_item_id=scan_in.linked_item_id
    )


@router.get("/", response_model=List[schemas.Receipt])
async def read_receipts(
    item_id: Optional[uuid.UUID] = Query(None, description="Only receipts linked to this item"),
    unlinked: bool = Query(False, description="Only receipts not linked to any item"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
) -> Any:
    return await crud.receipt.get_receipts(
        db, linked_item_id=item_id, unlinked_only=unlinked, skip=skip, limit=limit
    )


@router.get("/{receipt_id}", response_model=schemas.Receipt)
async def read_receipt_by_id(receipt_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> Any:
    receipt = await crud.receipt.get_receipt(db, receipt_id)
    if not receipt:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Receipt not found")
    return receipt


@router.put("/{receipt_id}", response_model=schemas.Receipt)
async def update_existing_receipt(
    receipt_id: uuid.UUID,
    receipt_in: schemas.ReceiptUpdate,
    db: AsyncSession = Depends(get_write_db),
) -> Any:
    receipt = await crud.receipt.get_receipt(db, receipt_id)
    if not receipt:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Receipt not found")
    return await crud.receipt.update_receipt(db, db_obj=receipt, obj_in=receipt_in)


@router.delete("/{receipt_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_existing_receipt(receipt_id: uuid.UUID, db: AsyncSession = Depends(get_write_db)) -> None:
    receipt = await crud.receipt.get_receipt(db, receipt_id)
    if not receipt:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Receipt not found")
    await crud.receipt.delete_receipt(db, db_obj=receipt)
