"""Ordered registry of schema versions.

Each version lists the tables that exist under it. Which columns a table has
at a given version comes from ``info={"added_in": ...}`` on the model columns;
a column without that marker has existed since the first version.
"""
from dataclasses import dataclass
from typing import Sequence, Tuple

from homeledger.core.exceptions import MigrationError

ADDED_IN_KEY = "added_in"

_V1_TABLES = (
    "categories",
    "rooms",
    "tags",
    "items",
    "item_tags",
    "item_photos",
    "receipts",
    "store_metadata",
)


@dataclass(frozen=True)
class SchemaVersion:
    identifier: str
    tables: Tuple[str, ...]
    description: str = ""

    @property
    def key(self) -> Tuple[int, ...]:
        return parse_version(self.identifier)

    def __str__(self) -> str:
        return self.identifier


V1_0_0 = SchemaVersion("1.0.0", _V1_TABLES, "Items, photos, receipts, categories, rooms, tags")
V1_1_0 = SchemaVersion("1.1.0", _V1_TABLES, "Item notes, barcode and market value estimate; default rooms")
V1_2_0 = SchemaVersion(
    "1.2.0",
    ("properties",) + _V1_TABLES + ("containers",),
    "Properties and containers; room -> property and item -> container links",
)

SCHEMA_VERSIONS = (V1_0_0, V1_1_0, V1_2_0)
CURRENT_VERSION = SCHEMA_VERSIONS[-1]

# Snapshots written before the version field existed
LEGACY_SNAPSHOT_VERSION = V1_0_0.identifier


def parse_version(identifier: str) -> Tuple[int, ...]:
    try:
        return tuple(int(part) for part in str(identifier).split("."))
    except ValueError:
        raise MigrationError(f"Unrecognized schema version '{identifier}'")


def find_version(identifier: str, versions: Sequence[SchemaVersion] = SCHEMA_VERSIONS) -> SchemaVersion:
    for version in versions:
        if version.identifier == identifier:
            return version
    newest = versions[-1]
    if parse_version(identifier) > newest.key:
        raise MigrationError(
            f"Schema version {identifier} is newer than the newest supported version {newest.identifier}"
        )
    raise MigrationError(f"Schema version {identifier} is not registered")


def added_in(schema_item) -> str:
    """Version a column or table first appeared in."""
    return schema_item.info.get(ADDED_IN_KEY, V1_0_0.identifier)
