"""Schema registry, store upgrades and snapshot upgrades."""
import uuid

import pytest
from sqlalchemy import Column, Integer, MetaData, String, Table, Text, inspect, insert, text

from homeledger.core.exceptions import MigrationError
from homeledger.crud import graph
from homeledger.db.init_db import init_db, seed_defaults
from homeledger.db.session import Store
from homeledger.migrations import CURRENT_VERSION, STAGES, MigrationEngine, MigrationStage, SchemaVersion, StageKind
from homeledger.migrations.engine import read_store_version, stamp_store_version
from homeledger.migrations.stages import backfill_default_property
from homeledger.migrations.versions import find_version
from homeledger.models import Item, Property, Room
from homeledger.models.store_metadata import SCHEMA_VERSION_KEY


@pytest.fixture
async def legacy_store(tmp_path):
    store = Store(f"sqlite+aiosqlite:///{tmp_path / 'legacy.db'}")
    yield store
    await store.dispose()


async def create_at(store, identifier, migrations=None):
    migrations = migrations or MigrationEngine()
    async with store.engine.begin() as conn:
        await conn.run_sync(migrations.create_schema_at, identifier)


async def insert_legacy_rooms(store, identifier, names):
    """Rows written through the old layout, exactly as an older release would have."""
    rooms = MigrationEngine().metadata_at(identifier).tables["rooms"]
    ids = []
    async with store.engine.begin() as conn:
        for sort_order, name in enumerate(names):
            room_id = uuid.uuid4()
            await conn.execute(insert(rooms).values(
                id=room_id, name=name, icon_name="door.left.hand.closed", sort_order=sort_order,
            ))
            ids.append(room_id)
    return ids


async def column_names(store, table):
    async with store.engine.connect() as conn:
        return await conn.run_sync(lambda sync: {c["name"] for c in inspect(sync).get_columns(table)})


async def stored_version(store):
    async with store.engine.connect() as conn:
        return await conn.run_sync(read_store_version)


def test_registry_lookup():
    assert CURRENT_VERSION.identifier == "1.2.0"
    assert find_version("1.1.0").identifier == "1.1.0"
    with pytest.raises(MigrationError, match="newer"):
        find_version("2.0.0")
    with pytest.raises(MigrationError, match="not registered"):
        find_version("1.0.5")
    with pytest.raises(MigrationError):
        find_version("one.two")


def test_metadata_at_describes_each_version():
    engine = MigrationEngine()

    v1 = engine.metadata_at("1.0.0")
    assert "properties" not in v1.tables
    assert "containers" not in v1.tables
    assert {"property_id", "is_default"}.isdisjoint(v1.tables["rooms"].columns.keys())
    assert "notes" not in v1.tables["items"].columns

    v11 = engine.metadata_at("1.1.0")
    assert "is_default" in v11.tables["rooms"].columns
    assert "notes" in v11.tables["items"].columns
    assert "container_id" not in v11.tables["items"].columns

    v12 = engine.metadata_at("1.2.0")
    assert {"properties", "containers"} <= set(v12.tables)
    assert "property_id" in v12.tables["rooms"].columns


def test_plan_reports_gaps_and_downgrades():
    assert [str(stage) for stage in MigrationEngine().plan("1.0.0")] == [
        "1.0.0 -> 1.1.0 (lightweight)",
        "1.1.0 -> 1.2.0 (custom)",
    ]
    assert MigrationEngine().plan("1.2.0") == []

    with pytest.raises(MigrationError, match="No migration stage"):
        MigrationEngine(stages=STAGES[:1]).plan("1.0.0")
    with pytest.raises(MigrationError, match="downgrade"):
        MigrationEngine().plan("1.2.0", "1.0.0")


def test_versions_must_be_ordered():
    versions = (SchemaVersion("1.1.0", ()), SchemaVersion("1.0.0", ()))
    with pytest.raises(MigrationError):
        MigrationEngine(versions=versions, stages=())


async def test_new_store_is_created_at_newest_version(store):
    assert await stored_version(store) == "1.2.0"
    assert "container_id" in await column_names(store, "items")


async def test_v1_store_gets_exactly_one_default_property(legacy_store):
    await create_at(legacy_store, "1.0.0")
    room_ids = await insert_legacy_rooms(legacy_store, "1.0.0", ["Kitchen", "Garage"])

    assert await init_db(legacy_store) == "1.2.0"

    assert await stored_version(legacy_store) == "1.2.0"
    assert {"notes", "barcode", "container_id"} <= await column_names(legacy_store, "items")
    assert {"is_default", "property_id"} <= await column_names(legacy_store, "rooms")

    async with legacy_store.session() as db:
        properties = await graph.list_entities(db, Property)
        assert len(properties) == 1
        assert properties[0].is_default is True
        assert properties[0].name == "My Home"
        rooms = await graph.list_entities(db, Room, order_by="sort_order")
        assert [room.id for room in rooms] == room_ids
        assert all(room.property_id == properties[0].id for room in rooms)
        assert all(room.is_default is False for room in rooms)

    # Opening again (and seeding) must not add a second property
    assert await init_db(legacy_store) == "1.2.0"
    await seed_defaults(legacy_store)
    async with legacy_store.session() as db:
        assert len(await graph.list_entities(db, Property)) == 1
        assert len(await graph.list_entities(db, Room)) == 2


async def test_upgrade_without_rooms_creates_no_property(legacy_store):
    await create_at(legacy_store, "1.1.0")

    await init_db(legacy_store)

    async with legacy_store.session() as db:
        assert await graph.list_entities(db, Property) == []


async def test_backfill_is_idempotent(legacy_store):
    await create_at(legacy_store, "1.1.0")
    await insert_legacy_rooms(legacy_store, "1.1.0", ["Office"])
    await init_db(legacy_store)

    async with legacy_store.engine.begin() as conn:
        assert await conn.run_sync(backfill_default_property) is None

    async with legacy_store.session() as db:
        assert len(await graph.list_entities(db, Property)) == 1


async def test_upgraded_store_accepts_new_entities(legacy_store):
    from homeledger import crud
    from homeledger.schemas import ContainerCreate, ItemCreate

    await create_at(legacy_store, "1.0.0")
    room_id, = await insert_legacy_rooms(legacy_store, "1.0.0", ["Basement"])
    await init_db(legacy_store)

    async with legacy_store.writer() as db:
        container = await crud.container.create_container(
            db, container_in=ContainerCreate(name="Shelf", room_id=room_id)
        )
        item = await crud.item.create_item(db, item_in=ItemCreate(name="Paint", container_id=container.id))

    assert item.room_id == room_id
    assert container.breadcrumb_path() == "My Home > Basement > Shelf"


async def test_missing_stage_leaves_store_untouched(legacy_store):
    await create_at(legacy_store, "1.0.0")

    with pytest.raises(MigrationError):
        await init_db(legacy_store, MigrationEngine(stages=STAGES[:1]))

    assert await stored_version(legacy_store) == "1.0.0"
    assert "notes" not in await column_names(legacy_store, "items")


async def test_store_newer_than_registry_is_rejected(legacy_store):
    await create_at(legacy_store, "1.2.0")
    async with legacy_store.engine.begin() as conn:
        await conn.run_sync(stamp_store_version, "9.0.0")

    with pytest.raises(MigrationError, match="newer"):
        await init_db(legacy_store)


async def test_store_without_version_is_rejected(legacy_store):
    async with legacy_store.engine.begin() as conn:
        await conn.execute(text("CREATE TABLE items (id VARCHAR(36) PRIMARY KEY)"))

    with pytest.raises(MigrationError, match="no recorded schema version"):
        await init_db(legacy_store)


def widget_registry(after_upgrade=None, label_nullable=True):
    metadata = MetaData()
    Table(
        "store_metadata", metadata,
        Column("key", String(64), primary_key=True),
        Column("value", Text, nullable=False),
    )
    Table(
        "widgets", metadata,
        Column("id", Integer, primary_key=True),
        Column("label", String(20), nullable=label_nullable, info={"added_in": "2.0.0"}),
    )
    tables = ("store_metadata", "widgets")
    versions = (SchemaVersion("1.0.0", tables), SchemaVersion("2.0.0", tables))
    stages = (MigrationStage(
        "1.0.0", "2.0.0", StageKind.CUSTOM,
        upgrade_snapshot=lambda document: None,
        after_upgrade=after_upgrade,
    ),)
    return MigrationEngine(versions=versions, stages=stages, metadata=metadata)


async def test_not_null_column_without_default_is_refused(legacy_store):
    engine = widget_registry(label_nullable=False)
    await create_at(legacy_store, "1.0.0", engine)

    with pytest.raises(MigrationError, match="NOT NULL"):
        await engine.upgrade_store(legacy_store.engine)

    assert await stored_version(legacy_store) == "1.0.0"


async def test_failed_hook_rolls_back_the_whole_stage(legacy_store):
    def explode(conn):
        raise RuntimeError("hook failed")

    engine = widget_registry(after_upgrade=explode)
    await create_at(legacy_store, "1.0.0", engine)

    with pytest.raises(MigrationError, match="hook failed"):
        await engine.upgrade_store(legacy_store.engine)

    assert await stored_version(legacy_store) == "1.0.0"
    assert "label" not in await column_names(legacy_store, "widgets")


async def test_stage_hooks_see_the_new_columns(legacy_store):
    seen = []

    def record_columns(conn):
        seen.extend(column["name"] for column in inspect(conn).get_columns("widgets"))
        conn.execute(text("INSERT INTO widgets (id, label) VALUES (1, 'first')"))

    engine = widget_registry(after_upgrade=record_columns)
    await create_at(legacy_store, "1.0.0", engine)

    assert await engine.upgrade_store(legacy_store.engine) == "2.0.0"
    assert "label" in seen
    async with legacy_store.engine.connect() as conn:
        assert (await conn.execute(text("SELECT label FROM widgets"))).scalar() == "first"


def test_snapshot_without_version_is_upgraded_from_first_release():
    room_id = str(uuid.uuid4())
    document = {
        "rooms": [{"id": room_id, "name": "Den"}],
        "items": [{"id": str(uuid.uuid4()), "name": "Lamp", "roomId": room_id}],
    }

    upgraded = MigrationEngine().upgrade_snapshot(document)

    assert "schemaVersion" not in document  # input is not modified
    assert upgraded["schemaVersion"] == "1.2.0"
    default, = upgraded["properties"]
    assert default["isDefault"] is True
    assert upgraded["rooms"][0]["propertyId"] == default["id"]
    assert upgraded["rooms"][0]["isDefault"] is False
    assert upgraded["items"][0]["notes"] is None
    assert upgraded["items"][0]["containerId"] is None
    assert upgraded["containers"] == []


def test_snapshot_reuses_existing_default_property():
    home = {"id": str(uuid.uuid4()), "name": "Condo", "isDefault": True}
    document = {
        "schemaVersion": "1.1.0",
        "properties": [home],
        "rooms": [{"id": str(uuid.uuid4()), "name": "Loft"}],
    }

    upgraded = MigrationEngine().upgrade_snapshot(document)

    assert upgraded["properties"] == [home]
    assert upgraded["rooms"][0]["propertyId"] == home["id"]


def test_snapshot_from_unknown_version_is_rejected():
    with pytest.raises(MigrationError):
        MigrationEngine().upgrade_snapshot({"schemaVersion": "3.0.0"})


def test_schema_version_key_is_stable():
    # Stores written by earlier releases look this key up by name
    assert SCHEMA_VERSION_KEY == "schema_version"
    assert Item.__table__.c.container_id.info["added_in"] == "1.2.0"
