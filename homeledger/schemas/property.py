from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime
from decimal import Decimal
import uuid

from homeledger.schemas.validators import COLOR_HEX_PATTERN, require_name, reject_none


class PropertyBase(BaseModel):
    name: str
    address: Optional[str] = None
    icon_name: str = "house.fill"
    color_hex: str = Field(default="#007AFF", pattern=COLOR_HEX_PATTERN)
    sort_order: int = 0
    is_default: bool = False
    notes: Optional[str] = None

    _check_name = field_validator("name")(require_name)


class PropertyCreate(PropertyBase):
    pass


class PropertyUpdate(BaseModel): # All fields optional for update
    name: Optional[str] = None
    address: Optional[str] = None
    icon_name: Optional[str] = None
    color_hex: Optional[str] = Field(default=None, pattern=COLOR_HEX_PATTERN)
    sort_order: Optional[int] = None
    is_default: Optional[bool] = None
    notes: Optional[str] = None

    _check_name = field_validator("name")(require_name)
    _not_null = field_validator("icon_name", "color_hex", "sort_order", "is_default")(reject_none)


class Property(PropertyBase): # Response schema
    id: uuid.UUID
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PropertySummary(BaseModel): # For lists, with rollups over every room's items
    id: uuid.UUID
    name: str
    is_default: bool
    room_count: int = 0
    item_count: int = 0
    total_value: Decimal = Decimal("0")
    average_documentation_score: float = 0.0
