from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import date, datetime
from decimal import Decimal
import uuid

from homeledger.schemas.validators import reject_none


class ReceiptData(BaseModel):
    """What the OCR collaborator hands back for one receipt image.

    ``confidence`` is nominally 0.0-1.0 but is neither clamped nor checked;
    keeping it in range is the recognizer's job.
    """
    vendor: Optional[str] = None
    total: Optional[Decimal] = None
    tax_amount: Optional[Decimal] = None
    purchase_date: Optional[date] = None
    raw_text: str = ""
    confidence: float = 0.0


class ReceiptBase(BaseModel):
    image_identifier: str = Field(min_length=1, max_length=255)
    vendor: Optional[str] = None
    total: Optional[Decimal] = None
    tax_amount: Optional[Decimal] = None
    purchase_date: Optional[date] = None
    raw_text: Optional[str] = None
    confidence: float = 0.0


class ReceiptCreate(ReceiptBase):
    linked_item_id: Optional[uuid.UUID] = None


class ReceiptUpdate(BaseModel):
    vendor: Optional[str] = None
    total: Optional[Decimal] = None
    tax_amount: Optional[Decimal] = None
    purchase_date: Optional[date] = None
    raw_text: Optional[str] = None
    confidence: Optional[float] = None
    linked_item_id: Optional[uuid.UUID] = None

    _not_null = field_validator("confidence")(reject_none)


class Receipt(ReceiptBase):
    id: uuid.UUID
    linked_item_id: Optional[uuid.UUID] = None
    created_at: datetime

    class Config:
        from_attributes = True
