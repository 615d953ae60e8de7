import copy
import logging
from typing import List, Optional, Sequence

from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import Column, ForeignKey, MetaData, Table, delete, inspect, insert, select
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.types import SchemaType

from homeledger.core.exceptions import MigrationError
from homeledger.db.base_class import Base
from homeledger.migrations.stages import STAGES, MigrationStage
from homeledger.migrations.versions import (
    SCHEMA_VERSIONS,
    LEGACY_SNAPSHOT_VERSION,
    SchemaVersion,
    added_in,
    find_version,
    parse_version,
)
from homeledger.models.store_metadata import SCHEMA_VERSION_KEY, store_metadata

logger = logging.getLogger(__name__)


def _detached_column(column: Column, include_foreign_keys: bool = True) -> Column:
    args = []
    if include_foreign_keys:
        for fk in column.foreign_keys:
            args.append(ForeignKey(fk.target_fullname, ondelete=fk.ondelete))
    server_default = column.server_default.arg if column.server_default is not None else None
    column_type = column.type
    if isinstance(column_type, SchemaType): # Enum/Boolean bind to their table
        column_type = column_type.copy()
    return Column(
        column.name,
        column_type,
        *args,
        primary_key=column.primary_key,
        nullable=column.nullable,
        server_default=server_default,
        index=column.index,
    )


def read_store_version(conn: Connection) -> Optional[str]:
    """Version stamped in the store; None for a store with no tables at all."""
    inspector = inspect(conn)
    table_names = inspector.get_table_names()
    if not table_names:
        return None
    if store_metadata.name not in table_names:
        raise MigrationError("Store has tables but no recorded schema version")
    version = conn.execute(
        select(store_metadata.c.value).where(store_metadata.c.key == SCHEMA_VERSION_KEY)
    ).scalar()
    if version is None:
        raise MigrationError("Store has tables but no recorded schema version")
    return version


def stamp_store_version(conn: Connection, identifier: str) -> None:
    conn.execute(delete(store_metadata).where(store_metadata.c.key == SCHEMA_VERSION_KEY))
    conn.execute(insert(store_metadata).values(key=SCHEMA_VERSION_KEY, value=identifier))


class MigrationEngine:
    """Brings stores and snapshots up to the newest registered schema.

    ``versions`` must be strictly ordered; ``stages`` holds one stage per
    adjacent pair. Any gap is reported when planning, before anything runs.
    """

    def __init__(
        self,
        versions: Sequence[SchemaVersion] = SCHEMA_VERSIONS,
        stages: Sequence[MigrationStage] = STAGES,
        metadata: MetaData = Base.metadata,
    ):
        if not versions:
            raise MigrationError("No schema versions registered")
        for older, newer in zip(versions, versions[1:]):
            if older.key >= newer.key:
                raise MigrationError(f"Schema versions out of order: {older} before {newer}")
        self.versions = tuple(versions)
        self.stages = {(stage.source, stage.target): stage for stage in stages}
        self.metadata = metadata

    @property
    def newest(self) -> SchemaVersion:
        return self.versions[-1]

    def _index(self, identifier: str) -> int:
        return self.versions.index(find_version(identifier, self.versions))

    def plan(self, source: str, target: Optional[str] = None) -> List[MigrationStage]:
        """Stages that take ``source`` to ``target`` (default: newest), in order."""
        start = self._index(source)
        end = self._index(target or self.newest.identifier)
        if start > end:
            raise MigrationError(f"Cannot downgrade from {source} to {target}")
        planned = []
        for older, newer in zip(self.versions[start:end], self.versions[start + 1:end + 1]):
            stage = self.stages.get((older.identifier, newer.identifier))
            if stage is None:
                raise MigrationError(f"No migration stage registered for {older} -> {newer}")
            planned.append(stage)
        return planned

    # --- Schema DDL ---

    def metadata_at(self, identifier: str) -> MetaData:
        """Standalone MetaData describing the tables and columns of one version."""
        index = self._index(identifier)
        version = self.versions[index]
        scratch = MetaData()
        for table in self.metadata.sorted_tables:
            if table.name not in version.tables:
                continue
            columns = [
                _detached_column(column)
                for column in table.columns
                if parse_version(added_in(column)) <= version.key
            ]
            Table(table.name, scratch, *columns)
        return scratch

    def create_schema_at(self, conn: Connection, identifier: str) -> None:
        """Create an empty store laid out exactly as ``identifier`` had it."""
        self.metadata_at(identifier).create_all(conn)
        stamp_store_version(conn, identifier)

    def _apply_additive_ddl(self, conn: Connection, identifier: str) -> None:
        target = self.metadata_at(identifier)
        inspector = inspect(conn)
        existing_tables = set(inspector.get_table_names())

        new_tables = [table for table in target.sorted_tables if table.name not in existing_tables]
        if new_tables:
            target.create_all(conn, tables=new_tables)
            logger.info(f"Created tables: {', '.join(t.name for t in new_tables)}")

        op = Operations(MigrationContext.configure(conn))
        for table in target.sorted_tables:
            if table.name not in existing_tables:
                continue
            present = {column["name"] for column in inspector.get_columns(table.name)}
            for column in table.columns:
                if column.name in present:
                    continue
                if not column.nullable and column.server_default is None:
                    raise MigrationError(
                        f"Column {table.name}.{column.name} is NOT NULL without a server default; "
                        "it cannot be added by a lightweight stage"
                    )
                # SQLite cannot ALTER constraints; the ORM carries the relationship rules
                op.add_column(table.name, _detached_column(column, include_foreign_keys=False))
                logger.info(f"Added column {table.name}.{column.name}")

    # --- Store upgrade ---

    def _run_stage(self, conn: Connection, stage: MigrationStage) -> None:
        if stage.before_upgrade is not None:
            stage.before_upgrade(conn)
        self._apply_additive_ddl(conn, stage.target)
        if stage.after_upgrade is not None:
            stage.after_upgrade(conn)
        stamp_store_version(conn, stage.target)

    async def upgrade_store(self, engine: AsyncEngine) -> str:
        """Open-time upgrade. Returns the version the store ends up at.

        An empty database is created directly at the newest version. Otherwise
        every intervening stage runs in order, each in its own transaction.
        """
        async with engine.connect() as conn:
            current = await conn.run_sync(read_store_version)

        if current is None:
            async with engine.begin() as conn:
                await conn.run_sync(self.create_schema_at, self.newest.identifier)
            logger.info(f"Created new store at schema version {self.newest}.")
            return self.newest.identifier

        stages = self.plan(current)
        if not stages:
            logger.info(f"Store is at schema version {current}; no migration needed.")
            return current

        for stage in stages:
            logger.info(f"Running migration stage {stage}")
            try:
                async with engine.begin() as conn:
                    await conn.run_sync(self._run_stage, stage)
            except MigrationError:
                raise
            except Exception as e:
                logger.error(f"Migration stage {stage} failed: {e}")
                raise MigrationError(f"Migration stage {stage} failed: {e}") from e
        logger.info(f"Store upgraded from {current} to {self.newest}.")
        return self.newest.identifier

    # --- Snapshot upgrade ---

    def upgrade_snapshot(self, document: dict) -> dict:
        """Copy of ``document`` upgraded in memory to the newest version."""
        upgraded = copy.deepcopy(document)
        source = upgraded.get("schemaVersion") or LEGACY_SNAPSHOT_VERSION
        upgraded["schemaVersion"] = source
        for stage in self.plan(source):
            stage.upgrade_snapshot(upgraded)
            upgraded["schemaVersion"] = stage.target
            logger.info(f"Upgraded snapshot {stage}")
        return upgraded
