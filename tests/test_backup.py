"""Snapshot export (JSON and CSV), file naming and snapshot parsing."""
import csv
import io
import json
import re
import zipfile
from datetime import date, datetime
from decimal import Decimal

import pytest

from homeledger import crud
from homeledger.core.exceptions import BackupFormatError, BackupIOError, MigrationError
from homeledger.schemas import (
    CategoryCreate,
    ContainerCreate,
    ItemCreate,
    ItemPhotoCreate,
    PropertyCreate,
    ReceiptCreate,
    RoomCreate,
    TagCreate,
)
from homeledger.services.backup import (
    ARCHIVE_SNAPSHOT_NAME,
    CSV_HEADERS,
    BackupSerializer,
    ExportFormat,
    build_archive,
    decode_snapshot,
    is_archive,
    open_archive,
    parse_snapshot,
    read_snapshot,
    timestamped_filename,
    write_snapshot,
)


async def populate(store):
    async with store.writer() as db:
        prop = await crud.property.create_property(db, property_in=PropertyCreate(name="Lake House"))
        room = await crud.room.create_room(db, room_in=RoomCreate(name="Study", property_id=prop.id))
        container = await crud.container.create_container(
            db, container_in=ContainerCreate(name="Drawer", room_id=room.id)
        )
        category = await crud.category.create_category(db, category_in=CategoryCreate(name="Electronics"))
        tag = await crud.tag.create_tag(db, tag_in=TagCreate(name="High Value", color_hex="#FF9500"))
        laptop = await crud.item.create_item(db, item_in=ItemCreate(
            name='Laptop 15", "Pro"',
            brand="Acme",
            serial_number="SN-42",
            purchase_price=Decimal("1999.99"),
            purchase_date=date(2023, 5, 1),
            category_id=category.id,
            room_id=room.id,
            tags=["work", "High Value"],
            tag_ids=[tag.id],
        ))
        await crud.item.create_item(db, item_in=ItemCreate(name="Cable", container_id=container.id))
        await crud.item.add_photo(db, db_obj=laptop, photo_in=ItemPhotoCreate(image_identifier="laptop.jpg"))
        await crud.receipt.create_receipt(db, receipt_in=ReceiptCreate(
            image_identifier="laptop-receipt.jpg",
            vendor="Acme Store",
            total=Decimal("2159.99"),
            tax_amount=Decimal("160.00"),
            confidence=1.4,
            linked_item_id=laptop.id,
        ))
    return laptop


async def test_json_export_uses_camel_case_and_exact_decimals(store, settings):
    laptop = await populate(store)

    async with store.session() as db:
        document = json.loads(await BackupSerializer(settings).export(db, ExportFormat.JSON))

    assert document["schemaVersion"] == "1.2.0"
    assert document["appVersion"] == settings.PROJECT_VERSION
    assert "exportDate" in document
    for collection in ("properties", "rooms", "containers", "items", "categories", "tags", "photos", "receipts"):
        assert collection in document

    item = next(i for i in document["items"] if i["name"] == laptop.name)
    assert item["purchasePrice"] == "1999.99"
    assert item["serialNumber"] == "SN-42"
    assert item["purchaseDate"] == "2023-05-01"
    assert item["condition"] == "good"
    assert item["tagIds"] == [document["tags"][0]["id"]]
    assert item["roomId"] == document["rooms"][0]["id"]
    assert "serial_number" not in item

    receipt, = document["receipts"]
    assert receipt["linkedItemId"] == item["id"]
    assert receipt["total"] == "2159.99"
    assert receipt["confidence"] == 1.4
    assert document["photos"][0]["itemId"] == item["id"]
    assert document["rooms"][0]["propertyId"] == document["properties"][0]["id"]


async def test_export_is_read_only(store, settings):
    await populate(store)

    async with store.session() as db:
        first = await BackupSerializer(settings).snapshot(db)
        second = await BackupSerializer(settings).snapshot(db)

    assert first.model_dump(exclude={"export_date"}) == second.model_dump(exclude={"export_date"})


async def test_csv_export_has_headers_and_escapes_fields(store, settings):
    await populate(store)

    async with store.session() as db:
        content = await BackupSerializer(settings).export(db, ExportFormat.CSV)

    rows = list(csv.reader(io.StringIO(content)))
    assert rows[0] == CSV_HEADERS
    by_name = {row[0]: dict(zip(CSV_HEADERS, row)) for row in rows[1:]}
    assert set(by_name) == {'Laptop 15", "Pro"', "Cable"}

    laptop = by_name['Laptop 15", "Pro"']
    assert laptop["Category"] == "Electronics"
    assert laptop["Room"] == "Study"
    assert laptop["Purchase Price"] == "1999.99"
    assert laptop["Purchase Date"] == "2023-05-01"
    assert laptop["Tags"] == "High Value; work"
    assert laptop["Documentation Score"] == "1.00"

    cable = by_name["Cable"]
    assert cable["Room"] == "Study"
    assert cable["Container"] == "Drawer"
    assert cable["Purchase Price"] == ""
    assert cable["Documentation Score"] == "0.15"

    # Embedded quotes are doubled inside a quoted field
    assert '"Laptop 15"", ""Pro"""' in content


async def test_csv_export_of_empty_store_is_just_headers(store, settings):
    async with store.session() as db:
        content = await BackupSerializer(settings).export(db, ExportFormat.CSV)
    assert content == ",".join(CSV_HEADERS) + "\n"


def test_timestamped_filenames():
    when = datetime(2024, 3, 9, 14, 5, 7)
    assert timestamped_filename(ExportFormat.JSON, when) == "homeledger-backup-20240309-140507.json"
    assert timestamped_filename(ExportFormat.CSV, when) == "homeledger-export-20240309-140507.csv"
    assert timestamped_filename(ExportFormat.ZIP, when) == "homeledger-backup-20240309-140507.zip"
    assert re.fullmatch(r"homeledger-backup-\d{8}-\d{6}\.json", timestamped_filename(ExportFormat.JSON))


async def test_export_to_file_and_read_back(store, settings, tmp_path):
    await populate(store)

    async with store.session() as db:
        path = await BackupSerializer(settings).export_to_file(db, ExportFormat.JSON, tmp_path / "out")

    assert path.parent == tmp_path / "out"
    document = await read_snapshot(path)
    snapshot = parse_snapshot(document)
    assert snapshot.counts() == {
        "property": 1, "room": 1, "container": 1, "item": 2,
        "category": 1, "tag": 1, "photo": 1, "receipt": 1,
    }


async def test_write_snapshot_to_unwritable_location_fails(store, settings, tmp_path):
    blocker = tmp_path / "not-a-directory"
    blocker.write_text("occupied")
    async with store.session() as db:
        snapshot = await BackupSerializer(settings).snapshot(db)

    with pytest.raises(BackupIOError):
        await write_snapshot(snapshot, blocker)


async def test_read_snapshot_rejects_oversized_files(tmp_path):
    path = tmp_path / "big.json"
    path.write_text(json.dumps({"schemaVersion": "1.2.0", "items": []}))

    with pytest.raises(BackupFormatError):
        await read_snapshot(path, max_bytes=5)


async def test_read_snapshot_of_missing_file(tmp_path):
    with pytest.raises(BackupIOError):
        await read_snapshot(tmp_path / "nope.json")


@pytest.mark.parametrize("raw", [b"", b"{\"schemaVersion\": \"1.2.0\", \"items\": [", b"\xff\xfe", b"[1, 2, 3]"])
def test_decode_rejects_corrupt_documents(raw):
    with pytest.raises(BackupFormatError):
        decode_snapshot(raw, source="test")


def test_parse_rejects_malformed_collections():
    with pytest.raises(BackupFormatError):
        parse_snapshot({"schemaVersion": "1.2.0", "items": [{"name": "No id"}]})
    with pytest.raises(BackupFormatError):
        parse_snapshot({"schemaVersion": "1.0.0", "items": "not a list"})


def test_parse_passes_migration_errors_through():
    with pytest.raises(MigrationError):
        parse_snapshot({"schemaVersion": "7.0.0"})


def test_parse_ignores_unknown_keys():
    snapshot = parse_snapshot({"schemaVersion": "1.2.0", "futureField": True, "tags": []})
    assert snapshot.schema_version == "1.2.0"
    assert snapshot.counts()["tag"] == 0


async def test_archive_holds_snapshot_and_available_photos(store, settings, memory_photos):
    await populate(store)
    # laptop-receipt.jpg is referenced but missing from the photo store
    memory_photos.files["laptop.jpg"] = b"\xff\xd8laptop"

    async with store.session() as db:
        raw = await BackupSerializer(settings).export_archive(db, memory_photos)

    assert is_archive(raw)
    with zipfile.ZipFile(io.BytesIO(raw)) as archive:
        assert sorted(archive.namelist()) == [ARCHIVE_SNAPSHOT_NAME, "photos/laptop.jpg"]
    document, files = open_archive(raw)
    assert document["schemaVersion"] == "1.2.0"
    assert [photo["imageIdentifier"] for photo in document["photos"]] == ["laptop.jpg"]
    assert files == {"laptop.jpg": b"\xff\xd8laptop"}


async def test_export_rejects_archive_format_without_photos(store, settings):
    async with store.session() as db:
        with pytest.raises(ValueError):
            await BackupSerializer(settings).export(db, ExportFormat.ZIP)


def test_open_archive_finds_snapshot_in_a_top_level_folder():
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("homeledger-backup/backup.json", json.dumps({"schemaVersion": "1.2.0"}))
        archive.writestr("homeledger-backup/photos/a.jpg", b"a")

    document, files = open_archive(buffer.getvalue())

    assert document == {"schemaVersion": "1.2.0"}
    assert files == {"a.jpg": b"a"}


@pytest.mark.parametrize("members", [{"notes.txt": b"hi"}, {"backup.json": b"{broken"}])
def test_open_archive_needs_a_readable_snapshot(members):
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, data in members.items():
            archive.writestr(name, data)

    with pytest.raises(BackupFormatError):
        open_archive(buffer.getvalue())


def test_open_archive_rejects_truncated_archives():
    raw = build_archive(json.dumps({"schemaVersion": "1.2.0"}), {"a.jpg": b"x" * 500})
    with pytest.raises(BackupFormatError):
        open_archive(raw[: len(raw) // 2])


def test_json_documents_are_not_archives():
    assert not is_archive(b'{"schemaVersion": "1.2.0"}')
