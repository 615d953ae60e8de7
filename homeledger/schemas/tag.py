from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime
import uuid

from homeledger.schemas.validators import TAG_COLOR_PATTERN, require_name, reject_none


class TagBase(BaseModel):
    name: str = Field(max_length=100)
    color_hex: str = Field(default="#007AFF", pattern=TAG_COLOR_PATTERN)
    is_favorite: bool = False

    _check_name = field_validator("name")(require_name)


class TagCreate(TagBase):
    pass


class TagUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=100)
    color_hex: Optional[str] = Field(default=None, pattern=TAG_COLOR_PATTERN)
    is_favorite: Optional[bool] = None

    _check_name = field_validator("name")(require_name)
    _not_null = field_validator("color_hex", "is_favorite")(reject_none)


class Tag(TagBase):
    id: uuid.UUID
    created_at: datetime

    class Config:
        from_attributes = True


class TagSummary(BaseModel):
    id: uuid.UUID
    name: str
    color_hex: str

    class Config:
        from_attributes = True
