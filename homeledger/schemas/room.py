from pydantic import BaseModel, field_validator
from typing import Optional
from decimal import Decimal
import uuid

from homeledger.schemas.validators import require_name, reject_none


class RoomBase(BaseModel):
    name: str
    icon_name: str = "door.left.hand.closed"
    sort_order: int = 0
    is_default: bool = False

    _check_name = field_validator("name")(require_name)


class RoomCreate(RoomBase):
    property_id: Optional[uuid.UUID] = None # Rooms may exist without a property


class RoomUpdate(BaseModel):
    name: Optional[str] = None
    icon_name: Optional[str] = None
    sort_order: Optional[int] = None
    is_default: Optional[bool] = None
    property_id: Optional[uuid.UUID] = None

    _check_name = field_validator("name")(require_name)
    _not_null = field_validator("icon_name", "sort_order", "is_default")(reject_none)


class Room(RoomBase):
    id: uuid.UUID
    property_id: Optional[uuid.UUID] = None

    class Config:
        from_attributes = True


class RoomSummary(BaseModel):
    id: uuid.UUID
    name: str
    property_id: Optional[uuid.UUID] = None
    item_count: int = 0
    total_value: Decimal = Decimal("0")
    average_documentation_score: float = 0.0
