from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime
from decimal import Decimal
import uuid

from homeledger.schemas.validators import COLOR_HEX_PATTERN, require_name, reject_none


class ContainerBase(BaseModel):
    name: str
    icon_name: str = "shippingbox.fill"
    color_hex: str = Field(default="#8B5CF6", pattern=COLOR_HEX_PATTERN)
    sort_order: int = 0
    notes: Optional[str] = None

    _check_name = field_validator("name")(require_name)


class ContainerCreate(ContainerBase):
    room_id: Optional[uuid.UUID] = None


class ContainerUpdate(BaseModel):
    name: Optional[str] = None
    icon_name: Optional[str] = None
    color_hex: Optional[str] = Field(default=None, pattern=COLOR_HEX_PATTERN)
    sort_order: Optional[int] = None
    notes: Optional[str] = None
    room_id: Optional[uuid.UUID] = None

    _check_name = field_validator("name")(require_name)
    _not_null = field_validator("icon_name", "color_hex", "sort_order")(reject_none)


class Container(ContainerBase):
    id: uuid.UUID
    room_id: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ContainerSummary(BaseModel):
    id: uuid.UUID
    name: str
    breadcrumb: str
    item_count: int = 0
    total_value: Decimal = Decimal("0")
    average_documentation_score: float = 0.0
