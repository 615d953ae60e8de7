"""Structured snapshot document.

One record model per entity type. Keys are camelCase on the wire and
snake_case in Python; relationships are id references, never nested objects.
Decimal fields serialize as exact strings in JSON mode.
"""
from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from typing import Optional, List
from datetime import date, datetime
from decimal import Decimal
import uuid

from homeledger.schemas.item import ItemCondition


class SnapshotModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True
        extra = "ignore" # Unknown keys from newer minor exports are dropped


class PropertyRecord(SnapshotModel):
    id: uuid.UUID
    name: str
    address: Optional[str] = None
    icon_name: str = "house.fill"
    color_hex: str = "#007AFF"
    sort_order: int = 0
    is_default: bool = False
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RoomRecord(SnapshotModel):
    id: uuid.UUID
    name: str
    icon_name: str = "door.left.hand.closed"
    sort_order: int = 0
    is_default: bool = False
    property_id: Optional[uuid.UUID] = None


class ContainerRecord(SnapshotModel):
    id: uuid.UUID
    name: str
    icon_name: str = "shippingbox.fill"
    color_hex: str = "#8B5CF6"
    sort_order: int = 0
    notes: Optional[str] = None
    room_id: Optional[uuid.UUID] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CategoryRecord(SnapshotModel):
    id: uuid.UUID
    name: str
    icon_name: str = "folder.fill"
    color_hex: str = "#007AFF"
    is_custom: bool = False
    sort_order: int = 0


class TagRecord(SnapshotModel):
    id: uuid.UUID
    name: str
    color_hex: str = "#007AFF"
    is_favorite: bool = False
    created_at: Optional[datetime] = None


class ItemRecord(SnapshotModel):
    id: uuid.UUID
    name: str
    brand: Optional[str] = None
    model_number: Optional[str] = None
    serial_number: Optional[str] = None
    purchase_price: Optional[Decimal] = None
    purchase_date: Optional[date] = None
    currency_code: str = "USD"
    condition: ItemCondition = ItemCondition.GOOD
    condition_notes: Optional[str] = None
    notes: Optional[str] = None
    warranty_expiry_date: Optional[date] = None
    tags: List[str] = []
    barcode: Optional[str] = None
    estimated_value: Optional[Decimal] = None
    estimated_value_low: Optional[Decimal] = None
    estimated_value_high: Optional[Decimal] = None
    value_source: Optional[str] = None
    value_lookup_date: Optional[datetime] = None
    category_id: Optional[uuid.UUID] = None
    room_id: Optional[uuid.UUID] = None
    container_id: Optional[uuid.UUID] = None
    tag_ids: List[uuid.UUID] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PhotoRecord(SnapshotModel):
    id: uuid.UUID
    item_id: uuid.UUID
    image_identifier: str
    sort_order: int = 0
    is_primary: bool = False
    created_at: Optional[datetime] = None


class ReceiptRecord(SnapshotModel):
    id: uuid.UUID
    image_identifier: str
    vendor: Optional[str] = None
    total: Optional[Decimal] = None
    tax_amount: Optional[Decimal] = None
    purchase_date: Optional[date] = None
    raw_text: Optional[str] = None
    confidence: float = 0.0
    linked_item_id: Optional[uuid.UUID] = None
    created_at: Optional[datetime] = None


class Snapshot(SnapshotModel):
    schema_version: str
    export_date: Optional[datetime] = None
    app_version: Optional[str] = None
    properties: List[PropertyRecord] = []
    rooms: List[RoomRecord] = []
    containers: List[ContainerRecord] = []
    items: List[ItemRecord] = []
    categories: List[CategoryRecord] = []
    tags: List[TagRecord] = []
    photos: List[PhotoRecord] = []
    receipts: List[ReceiptRecord] = []

    def counts(self) -> dict:
        return {
            "property": len(self.properties),
            "room": len(self.rooms),
            "container": len(self.containers),
            "item": len(self.items),
            "category": len(self.categories),
            "tag": len(self.tags),
            "photo": len(self.photos),
            "receipt": len(self.receipts),
        }

    def to_document(self) -> dict:
        """JSON-ready dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)
