from sqlalchemy import Column, String, Table, Text

from homeledger.db.base_class import Base

SCHEMA_VERSION_KEY = "schema_version"

# Key/value bookkeeping for the store itself (currently only the schema version)
store_metadata = Table(
    "store_metadata",
    Base.metadata,
    Column("key", String(64), primary_key=True),
    Column("value", Text, nullable=False),
)
