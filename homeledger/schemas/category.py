from pydantic import BaseModel, Field, field_validator
from typing import Optional
import uuid

from homeledger.schemas.validators import COLOR_HEX_PATTERN, require_name, reject_none


class CategoryBase(BaseModel):
    name: str
    icon_name: str = "folder.fill"
    color_hex: str = Field(default="#007AFF", pattern=COLOR_HEX_PATTERN)
    is_custom: bool = True # Anything created by the user is custom; seeds pass False
    sort_order: int = 0

    _check_name = field_validator("name")(require_name)


class CategoryCreate(CategoryBase):
    pass


class CategoryUpdate(BaseModel):
    name: Optional[str] = None
    icon_name: Optional[str] = None
    color_hex: Optional[str] = Field(default=None, pattern=COLOR_HEX_PATTERN)
    sort_order: Optional[int] = None

    _check_name = field_validator("name")(require_name)
    _not_null = field_validator("icon_name", "color_hex", "sort_order")(reject_none)


class Category(CategoryBase):
    id: uuid.UUID

    class Config:
        from_attributes = True
