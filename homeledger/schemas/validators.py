# Shared field rules for the create/update schemas
from typing import Optional

COLOR_HEX_PATTERN = r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$"
TAG_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"
CURRENCY_PATTERN = r"^[A-Z]{3}$"


def require_name(value: Optional[str]) -> str:
    if value is None or not value.strip():
        raise ValueError("name cannot be empty")
    return value.strip()


def reject_none(value):
    # Used on update schemas for columns that are NOT NULL in the store
    if value is None:
        raise ValueError("field cannot be null")
    return value
