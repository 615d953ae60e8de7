"""Migration stages, one per adjacent pair of schema versions.

A stage upgrades a live store (inside one transaction, on a sync connection
handed over by ``run_sync``) and has a matching function that upgrades an
in-memory snapshot document written under the older version.
"""
import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from sqlalchemy import insert, select, true, update
from sqlalchemy.engine import Connection

from homeledger.db.base_class import utcnow
from homeledger.models.property import (
    Property,
    DEFAULT_PROPERTY_NAME,
    DEFAULT_PROPERTY_ICON,
    DEFAULT_PROPERTY_COLOR,
)
from homeledger.models.room import Room

logger = logging.getLogger(__name__)


class StageKind(str, Enum):
    LIGHTWEIGHT = "lightweight" # Additive DDL only
    CUSTOM = "custom" # Additive DDL wrapped in before/after hooks


@dataclass(frozen=True)
class MigrationStage:
    source: str
    target: str
    kind: StageKind
    upgrade_snapshot: Callable[[dict], None]
    before_upgrade: Optional[Callable[[Connection], None]] = None
    after_upgrade: Optional[Callable[[Connection], None]] = None

    def __str__(self) -> str:
        return f"{self.source} -> {self.target} ({self.kind.value})"


# --- 1.0.0 -> 1.1.0 ---

_V1_1_ITEM_FIELDS = (
    "notes",
    "barcode",
    "estimatedValue",
    "estimatedValueLow",
    "estimatedValueHigh",
    "valueSource",
    "valueLookupDate",
)


def _snapshot_to_1_1(document: dict) -> None:
    for item in document.get("items") or []:
        for field_name in _V1_1_ITEM_FIELDS:
            item.setdefault(field_name, None)
    for room in document.get("rooms") or []:
        room.setdefault("isDefault", False)


# --- 1.1.0 -> 1.2.0 ---

def backfill_default_property(conn: Connection) -> Optional[uuid.UUID]:
    """Attach every room without a property to the default property.

    Reuses an existing default property and only creates one when there are
    parentless rooms and no default exists yet, so running it again is a no-op.
    """
    rooms = Room.__table__
    properties = Property.__table__

    orphan_count = len(conn.execute(select(rooms.c.id).where(rooms.c.property_id.is_(None))).all())
    if not orphan_count:
        logger.info("No parentless rooms; default property backfill skipped.")
        return None

    default_id = conn.execute(
        select(properties.c.id)
        .where(properties.c.is_default == true())
        .order_by(properties.c.sort_order, properties.c.created_at)
        .limit(1)
    ).scalar()
    if default_id is None:
        default_id = uuid.uuid4()
        now = utcnow()
        conn.execute(insert(properties).values(
            id=default_id,
            name=DEFAULT_PROPERTY_NAME,
            icon_name=DEFAULT_PROPERTY_ICON,
            color_hex=DEFAULT_PROPERTY_COLOR,
            sort_order=0,
            is_default=True,
            created_at=now,
            updated_at=now,
        ))
        logger.info(f"Created default property {default_id}.")

    conn.execute(update(rooms).where(rooms.c.property_id.is_(None)).values(property_id=default_id))
    logger.info(f"Attached {orphan_count} parentless room(s) to property {default_id}.")
    return default_id


def _snapshot_to_1_2(document: dict) -> None:
    properties = document.setdefault("properties", [])
    document.setdefault("containers", [])
    for item in document.get("items") or []:
        item.setdefault("containerId", None)

    rooms = document.get("rooms") or []
    for room in rooms:
        room.setdefault("propertyId", None)
    orphans = [room for room in rooms if not room.get("propertyId")]
    if not orphans:
        return

    default = next((p for p in properties if p.get("isDefault")), None)
    if default is None:
        default = {
            "id": str(uuid.uuid4()),
            "name": DEFAULT_PROPERTY_NAME,
            "iconName": DEFAULT_PROPERTY_ICON,
            "colorHex": DEFAULT_PROPERTY_COLOR,
            "sortOrder": 0,
            "isDefault": True,
        }
        properties.append(default)
    for room in orphans:
        room["propertyId"] = default["id"]


STAGES = (
    MigrationStage(
        source="1.0.0",
        target="1.1.0",
        kind=StageKind.LIGHTWEIGHT,
        upgrade_snapshot=_snapshot_to_1_1,
    ),
    MigrationStage(
        source="1.1.0",
        target="1.2.0",
        kind=StageKind.CUSTOM,
        upgrade_snapshot=_snapshot_to_1_2,
        after_upgrade=backfill_default_property,
    ),
)
