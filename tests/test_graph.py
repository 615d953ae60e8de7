"""Entity graph: creation, cascade and nullify rules, validation and queries."""
import uuid
from decimal import Decimal

import pytest
from pydantic import ValidationError

from homeledger import crud
from homeledger.core.exceptions import EntityNotFoundError, EntityValidationError
from homeledger.crud import graph
from homeledger.models import Category, Container, Item, ItemPhoto, Property, Receipt, Room, Tag
from homeledger.schemas import (
    CategoryCreate,
    ContainerCreate,
    ItemCreate,
    ItemPhotoCreate,
    ItemUpdate,
    PropertyCreate,
    ReceiptCreate,
    RoomCreate,
    TagCreate,
)


async def build_property(db, *, rooms=2, containers=2, items=2, name="Beach House"):
    """A property with rooms, containers in each room and items in each container."""
    prop = await crud.property.create_property(db, property_in=PropertyCreate(name=name))
    for r in range(rooms):
        room = await crud.room.create_room(db, room_in=RoomCreate(name=f"Room {r}", property_id=prop.id))
        for c in range(containers):
            container = await crud.container.create_container(
                db, container_in=ContainerCreate(name=f"Box {r}.{c}", room_id=room.id)
            )
            for i in range(items):
                await crud.item.create_item(
                    db, item_in=ItemCreate(name=f"Thing {r}.{c}.{i}", container_id=container.id)
                )
    return prop


async def count(db, model, **filters):
    return len(await graph.list_entities(db, model, filters=filters))


async def test_deleting_property_cascades_rooms_and_containers_but_keeps_items(store):
    async with store.writer() as db:
        prop = await build_property(db, rooms=2, containers=3, items=2)

    async with store.writer() as db:
        prop = await crud.property.get_property(db, prop.id)
        await crud.property.delete_property(db, db_obj=prop)

    async with store.session() as db:
        assert await count(db, Property) == 0
        assert await count(db, Room) == 0
        assert await count(db, Container) == 0
        items = await crud.item.get_items(db, limit=None)
        assert len(items) == 12
        assert all(item.room_id is None and item.container_id is None for item in items)
        assert await graph.find_orphans(db) == []


async def test_item_in_container_inherits_room(store):
    async with store.writer() as db:
        room = await crud.room.create_room(db, room_in=RoomCreate(name="Garage"))
        container = await crud.container.create_container(
            db, container_in=ContainerCreate(name="Bin A", room_id=room.id)
        )
        item = await crud.item.create_item(db, item_in=ItemCreate(name="Drill", container_id=container.id))

    assert item.room_id == room.id
    assert item.container_id == container.id


async def test_deleting_container_moves_items_to_room_level(store):
    async with store.writer() as db:
        room = await crud.room.create_room(db, room_in=RoomCreate(name="Garage"))
        container = await crud.container.create_container(
            db, container_in=ContainerCreate(name="Bin A", room_id=room.id)
        )
        item = await crud.item.create_item(db, item_in=ItemCreate(name="Drill", container_id=container.id))

    async with store.writer() as db:
        container = await crud.container.get_container(db, container.id)
        await crud.container.delete_container(db, db_obj=container)

    async with store.session() as db:
        survivor = await crud.item.get_item(db, item.id)
        assert survivor.container_id is None
        assert survivor.room_id == room.id


async def test_deleting_room_clears_item_room(store):
    async with store.writer() as db:
        room = await crud.room.create_room(db, room_in=RoomCreate(name="Attic"))
        item = await crud.item.create_item(db, item_in=ItemCreate(name="Trunk", room_id=room.id))

    async with store.writer() as db:
        room = await crud.room.get_room(db, room.id)
        await crud.room.delete_room(db, db_obj=room)

    async with store.session() as db:
        survivor = await crud.item.get_item(db, item.id)
        assert survivor is not None
        assert survivor.room_id is None


async def test_deleting_item_removes_photos_and_unlinks_receipts(store):
    async with store.writer() as db:
        item = await crud.item.create_item(db, item_in=ItemCreate(name="Television"))
        await crud.item.add_photo(db, db_obj=item, photo_in=ItemPhotoCreate(image_identifier="tv-front.jpg"))
        await crud.item.add_photo(db, db_obj=item, photo_in=ItemPhotoCreate(image_identifier="tv-back.jpg"))
        receipt = await crud.receipt.create_receipt(
            db, receipt_in=ReceiptCreate(image_identifier="tv-receipt.jpg", linked_item_id=item.id)
        )

    async with store.writer() as db:
        item = await crud.item.get_item(db, item.id)
        assert len(item.photos) == 2
        await crud.item.delete_item(db, db_obj=item)

    async with store.session() as db:
        assert await count(db, ItemPhoto) == 0
        kept = await crud.receipt.get_receipt(db, receipt.id)
        assert kept is not None
        assert kept.linked_item_id is None


async def test_deleting_tag_and_category_leaves_items(store):
    async with store.writer() as db:
        category = await crud.category.create_category(db, category_in=CategoryCreate(name="Jewelry"))
        tag = await crud.tag.create_tag(db, tag_in=TagCreate(name="Heirloom", color_hex="#FF9500"))
        item = await crud.item.create_item(
            db, item_in=ItemCreate(name="Ring", category_id=category.id, tag_ids=[tag.id])
        )
        assert [t.name for t in item.tag_objects] == ["Heirloom"]

    async with store.writer() as db:
        await crud.tag.delete_tag(db, db_obj=await crud.tag.get_tag(db, tag.id))
    async with store.writer() as db:
        await crud.category.delete_category(db, db_obj=await crud.category.get_category(db, category.id))

    async with store.session() as db:
        ring = await crud.item.get_item(db, item.id)
        assert ring.category_id is None
        assert ring.tag_objects == []
        assert await count(db, Tag) == 0
        assert await count(db, Category) == 0


@pytest.mark.parametrize(
    "schema, fields",
    [
        (ItemCreate, {"name": "   "}),
        (ItemCreate, {"name": "Lamp", "purchase_price": Decimal("-1")}),
        (ItemCreate, {"name": "Lamp", "currency_code": "usd"}),
        (ItemCreate, {"name": "Lamp", "currency_code": "EURO"}),
        (TagCreate, {"name": "Red", "color_hex": "#F00"}),
        (TagCreate, {"name": "Red", "color_hex": "FF0000"}),
        (PropertyCreate, {"name": "Cabin", "color_hex": "blue"}),
        (RoomCreate, {"name": ""}),
    ],
)
async def test_invalid_fields_are_rejected_before_commit(store, schema, fields):
    with pytest.raises(ValidationError):
        schema(**fields)

    async with store.session() as db:
        assert await count(db, Item) == 0
        assert await count(db, Tag) == 0


def test_item_update_cannot_null_required_fields():
    with pytest.raises(ValidationError):
        ItemUpdate(currency_code=None)
    with pytest.raises(ValidationError):
        ItemUpdate(name=None)
    assert ItemUpdate(serial_number=None).model_dump(exclude_unset=True) == {"serial_number": None}


async def test_duplicate_tag_names_are_rejected_case_insensitively(store):
    async with store.writer() as db:
        await crud.tag.create_tag(db, tag_in=TagCreate(name="Electronics"))

    with pytest.raises(EntityValidationError):
        async with store.writer() as db:
            await crud.tag.create_tag(db, tag_in=TagCreate(name="electronics"))

    async with store.session() as db:
        assert await count(db, Tag) == 1


async def test_linking_missing_parent_is_not_found(store):
    with pytest.raises(EntityNotFoundError):
        async with store.writer() as db:
            await crud.item.create_item(db, item_in=ItemCreate(name="Ghost", room_id=uuid.uuid4()))


async def test_list_entities_filters_sorts_and_prefetches(store):
    async with store.writer() as db:
        kitchen = await crud.room.create_room(db, room_in=RoomCreate(name="Kitchen"))
        office = await crud.room.create_room(db, room_in=RoomCreate(name="Office"))
        for name, price, room in (("Mixer", "250", kitchen), ("Kettle", "40", kitchen), ("Desk", "600", office)):
            await crud.item.create_item(
                db, item_in=ItemCreate(name=name, purchase_price=Decimal(price), room_id=room.id)
            )

    async with store.session() as db:
        kitchen_items = await graph.list_entities(
            db, Item, filters={"room_id": kitchen.id}, order_by="name"
        )
        assert [item.name for item in kitchen_items] == ["Kettle", "Mixer"]

        by_name_desc = await graph.list_entities(db, Item, order_by="name", descending=True)
        assert [item.name for item in by_name_desc] == ["Mixer", "Kettle", "Desk"]

        rooms = await graph.list_entities(db, Room, order_by="name", prefetch=["items"])
        assert {room.name: len(room.items) for room in rooms} == {"Kitchen": 2, "Office": 1}

        searched = await crud.item.get_items(db, search="KET")
        assert [item.name for item in searched] == ["Kettle"]

        with pytest.raises(EntityValidationError):
            await graph.list_entities(db, Item, order_by="no_such_field")


async def test_rollups_cover_rooms_and_containers(store):
    async with store.writer() as db:
        prop = await crud.property.create_property(db, property_in=PropertyCreate(name="Cabin"))
        room = await crud.room.create_room(db, room_in=RoomCreate(name="Den", property_id=prop.id))
        container = await crud.container.create_container(
            db, container_in=ContainerCreate(name="Chest", room_id=room.id)
        )
        await crud.item.create_item(
            db, item_in=ItemCreate(name="Rug", purchase_price=Decimal("120.50"), room_id=room.id)
        )
        await crud.item.create_item(
            db, item_in=ItemCreate(name="Quilt", purchase_price=Decimal("80.25"), container_id=container.id)
        )

    async with store.session() as db:
        summary = crud.property.summarize(await crud.property.get_property(db, prop.id, with_subtree=True))
        assert summary.room_count == 1
        assert summary.item_count == 2
        assert summary.total_value == Decimal("200.75")
        # value + room for both items
        assert summary.average_documentation_score == pytest.approx(0.40)

        container_summary = crud.container.summarize(await crud.container.get_container(db, container.id))
        assert container_summary.breadcrumb == "Cabin > Den > Chest"
        assert container_summary.item_count == 1


async def test_item_update_replaces_tags(store):
    async with store.writer() as db:
        first = await crud.tag.create_tag(db, tag_in=TagCreate(name="Fragile"))
        second = await crud.tag.create_tag(db, tag_in=TagCreate(name="Vintage"))
        item = await crud.item.create_item(db, item_in=ItemCreate(name="Vase", tag_ids=[first.id]))

        item = await crud.item.update_item(
            db, db_obj=item, obj_in=ItemUpdate(tag_ids=[second.id], serial_number="V-1")
        )

    assert [tag.name for tag in item.tag_objects] == ["Vintage"]
    assert item.serial_number == "V-1"
    assert item.documentation_score == pytest.approx(0.10)


async def test_writer_holds_the_single_write_lock(store):
    assert not store.write_in_progress
    async with store.writer():
        assert store.write_in_progress
    assert not store.write_in_progress


async def test_reader_sees_committed_state_while_a_delete_is_in_flight(store):
    async with store.writer() as db:
        prop = await build_property(db, rooms=1, containers=1, items=1)

    async with store.writer() as db:
        live = await graph.require_entity(db, Property, prop.id)
        await db.delete(live)
        await db.flush()
        assert await graph.list_entities(db, Room) == []

        async with store.session() as reader:
            assert len(await graph.list_entities(reader, Property)) == 1
            assert len(await graph.list_entities(reader, Room)) == 1
            assert len(await graph.list_entities(reader, Container)) == 1
        await db.rollback()

    async with store.session() as reader:
        assert len(await graph.list_entities(reader, Room)) == 1
