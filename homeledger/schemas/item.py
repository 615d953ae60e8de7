from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
import uuid

from homeledger.schemas.validators import CURRENCY_PATTERN, require_name, reject_none
from homeledger.schemas.tag import TagSummary
from homeledger.schemas.receipt import Receipt


class ItemCondition(str, Enum):
    NEW = "new"
    LIKE_NEW = "like-new"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


# --- Item Photo Schemas ---
class ItemPhotoBase(BaseModel):
    image_identifier: str = Field(min_length=1, max_length=255)
    sort_order: int = 0
    is_primary: bool = False


class ItemPhotoCreate(ItemPhotoBase):
    pass


class ItemPhoto(ItemPhotoBase):
    id: uuid.UUID
    item_id: uuid.UUID
    created_at: datetime

    class Config:
        from_attributes = True


# --- Item Schemas ---
class ItemBase(BaseModel):
    name: str
    brand: Optional[str] = None
    model_number: Optional[str] = None
    serial_number: Optional[str] = None
    purchase_price: Optional[Decimal] = Field(default=None, ge=0)
    purchase_date: Optional[date] = None
    currency_code: str = Field(default="USD", pattern=CURRENCY_PATTERN)
    condition: ItemCondition = ItemCondition.GOOD
    condition_notes: Optional[str] = None
    notes: Optional[str] = None
    warranty_expiry_date: Optional[date] = None
    tags: List[str] = [] # Legacy flat tag list
    barcode: Optional[str] = None
    estimated_value: Optional[Decimal] = Field(default=None, ge=0)
    estimated_value_low: Optional[Decimal] = Field(default=None, ge=0)
    estimated_value_high: Optional[Decimal] = Field(default=None, ge=0)
    value_source: Optional[str] = None
    value_lookup_date: Optional[datetime] = None

    _check_name = field_validator("name")(require_name)


class ItemCreate(ItemBase):
    category_id: Optional[uuid.UUID] = None
    room_id: Optional[uuid.UUID] = None
    container_id: Optional[uuid.UUID] = None
    tag_ids: List[uuid.UUID] = []


class ItemUpdate(BaseModel): # All fields optional for update
    name: Optional[str] = None
    brand: Optional[str] = None
    model_number: Optional[str] = None
    serial_number: Optional[str] = None
    purchase_price: Optional[Decimal] = Field(default=None, ge=0)
    purchase_date: Optional[date] = None
    currency_code: Optional[str] = Field(default=None, pattern=CURRENCY_PATTERN)
    condition: Optional[ItemCondition] = None
    condition_notes: Optional[str] = None
    notes: Optional[str] = None
    warranty_expiry_date: Optional[date] = None
    tags: Optional[List[str]] = None
    barcode: Optional[str] = None
    estimated_value: Optional[Decimal] = Field(default=None, ge=0)
    estimated_value_low: Optional[Decimal] = Field(default=None, ge=0)
    estimated_value_high: Optional[Decimal] = Field(default=None, ge=0)
    value_source: Optional[str] = None
    value_lookup_date: Optional[datetime] = None
    category_id: Optional[uuid.UUID] = None
    room_id: Optional[uuid.UUID] = None
    container_id: Optional[uuid.UUID] = None
    tag_ids: Optional[List[uuid.UUID]] = None # Replaces the tag set when given

    _check_name = field_validator("name")(require_name)
    _not_null = field_validator("currency_code", "condition", "tags", "tag_ids")(reject_none)


class Item(ItemBase): # Response schema
    id: uuid.UUID
    category_id: Optional[uuid.UUID] = None
    room_id: Optional[uuid.UUID] = None
    container_id: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime

    photos: List[ItemPhoto] = []
    receipts: List[Receipt] = []
    tag_objects: List[TagSummary] = []

    # Computed on read by the model
    documentation_score: float
    missing_documentation: List[str]
    is_documented: bool

    class Config:
        from_attributes = True


class ItemSummary(BaseModel): # For list views
    id: uuid.UUID
    name: str
    brand: Optional[str] = None
    purchase_price: Optional[Decimal] = None
    currency_code: str
    condition: ItemCondition
    room_id: Optional[uuid.UUID] = None
    container_id: Optional[uuid.UUID] = None
    category_id: Optional[uuid.UUID] = None
    documentation_score: float
    is_documented: bool

    class Config:
        from_attributes = True


class DocumentationReport(BaseModel):
    item_id: uuid.UUID
    score: float
    missing: List[str]
    is_documented: bool
