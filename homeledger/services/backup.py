"""Backup serializer.

Three outputs: the structured JSON snapshot (full fidelity, re-importable),
a ZIP archive holding that snapshot plus the photo files it references, and a
flattened CSV with one row per item (lossy, export only). Exporting only
reads from the store. File I/O runs in a worker thread so the event loop
keeps serving requests while large files are written or read.
"""
import asyncio
import csv
import io
import json
import logging
import zipfile
import zlib
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from homeledger.core.config import Settings
from homeledger.core.exceptions import BackupFormatError, BackupIOError, MigrationError, PhotoStorageError
from homeledger.crud import graph
from homeledger.migrations import CURRENT_VERSION, MigrationEngine
from homeledger.models import Category, Container, Item, ItemPhoto, Property, Receipt, Room, Tag
from homeledger.schemas.backup import (
    Snapshot,
    PropertyRecord,
    RoomRecord,
    ContainerRecord,
    CategoryRecord,
    TagRecord,
    ItemRecord,
    PhotoRecord,
    ReceiptRecord,
)
from homeledger.services import scoring
from homeledger.services.photo_storage import PhotoStorage

logger = logging.getLogger(__name__)

BACKUP_FILENAME_PREFIX = "homeledger-backup"
EXPORT_FILENAME_PREFIX = "homeledger-export"

CSV_HEADERS = [
    "Name",
    "Brand",
    "Model",
    "Serial Number",
    "Category",
    "Room",
    "Container",
    "Condition",
    "Purchase Price",
    "Currency",
    "Purchase Date",
    "Tags",
    "Documentation Score",
]
CSV_TAG_SEPARATOR = "; "

ARCHIVE_SNAPSHOT_NAME = "backup.json"
ARCHIVE_PHOTO_DIR = "photos/"

_MEDIA_TYPES = {"json": "application/json", "zip": "application/zip", "csv": "text/csv"}


class ExportFormat(str, Enum):
    JSON = "json" # Structured snapshot
    ZIP = "zip" # Structured snapshot plus photo files
    CSV = "csv" # One row per item

    @property
    def extension(self) -> str:
        return self.value

    @property
    def media_type(self) -> str:
        return _MEDIA_TYPES[self.value]


def _record(record_cls, obj, **overrides):
    values = {name: getattr(obj, name) for name in record_cls.model_fields if name not in overrides}
    values.update(overrides)
    return record_cls(**values)


def timestamped_filename(export_format: ExportFormat, when: Optional[datetime] = None) -> str:
    when = when or datetime.now()
    prefix = EXPORT_FILENAME_PREFIX if export_format is ExportFormat.CSV else BACKUP_FILENAME_PREFIX
    return f"{prefix}-{when:%Y%m%d-%H%M%S}.{export_format.extension}"


def render_json(snapshot: Snapshot) -> str:
    return json.dumps(snapshot.to_document(), indent=2, ensure_ascii=False)


def _item_tag_names(item: Item) -> List[str]:
    names = [tag.name for tag in item.tag_objects]
    seen = {name.lower() for name in names}
    for legacy in item.tags or []:
        if legacy.lower() not in seen:
            names.append(legacy)
            seen.add(legacy.lower())
    return names


def render_csv(items: List[Item]) -> str:
    """Items need category, room and container loaded."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for item in items:
        writer.writerow([
            item.name,
            item.brand or "",
            item.model_number or "",
            item.serial_number or "",
            item.category.name if item.category else "",
            item.room.name if item.room else "",
            item.container.name if item.container else "",
            item.condition.value if item.condition else "",
            str(item.purchase_price) if item.purchase_price is not None else "",
            item.currency_code,
            item.purchase_date.isoformat() if item.purchase_date else "",
            CSV_TAG_SEPARATOR.join(_item_tag_names(item)),
            f"{scoring.score(item).value:.2f}",
        ])
    return buffer.getvalue()


def referenced_images(snapshot: Snapshot) -> List[str]:
    """Every image identifier the snapshot points at, photos and receipts alike."""
    identifiers = {photo.image_identifier for photo in snapshot.photos}
    identifiers.update(receipt.image_identifier for receipt in snapshot.receipts)
    return sorted(identifiers)


def build_archive(snapshot_json: str, photos: Dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        archive.writestr(ARCHIVE_SNAPSHOT_NAME, snapshot_json)
        for identifier in sorted(photos):
            archive.writestr(ARCHIVE_PHOTO_DIR + identifier, photos[identifier])
    return buffer.getvalue()


def is_archive(raw: bytes) -> bool:
    return zipfile.is_zipfile(io.BytesIO(raw))


def open_archive(raw: bytes, source: str = "archive") -> Tuple[dict, Dict[str, bytes]]:
    """Raw snapshot document and photo files from a backup archive.

    The snapshot may sit at the archive root or inside one top-level folder;
    photo files are read from the ``photos/`` folder next to it.
    """
    try:
        with zipfile.ZipFile(io.BytesIO(raw)) as archive:
            names = archive.namelist()
            snapshot_name = next(
                (name for name in sorted(names, key=len)
                 if name == ARCHIVE_SNAPSHOT_NAME
                 or (name.endswith("/" + ARCHIVE_SNAPSHOT_NAME) and name.count("/") == 1)),
                None,
            )
            if snapshot_name is None:
                raise BackupFormatError(f"Backup archive {source} has no {ARCHIVE_SNAPSHOT_NAME}")
            document = decode_snapshot(archive.read(snapshot_name), source=source)

            photo_prefix = snapshot_name[: -len(ARCHIVE_SNAPSHOT_NAME)] + ARCHIVE_PHOTO_DIR
            photos = {
                name[len(photo_prefix):]: archive.read(name)
                for name in names
                if name.startswith(photo_prefix) and not name.endswith("/")
            }
    except (zipfile.BadZipFile, zlib.error, EOFError) as e:
        raise BackupFormatError(f"Backup archive {source} is corrupt or truncated", cause=e) from e
    logger.info(f"Opened archive {source}: {len(photos)} photo file(s)")
    return document, photos


class BackupSerializer:
    def __init__(self, settings: Settings):
        self.settings = settings

    async def snapshot(self, db: AsyncSession) -> Snapshot:
        """Every entity in the store, each collection in a stable order."""
        properties = await graph.list_entities(db, Property, order_by=["sort_order", "name", "id"])
        rooms = await graph.list_entities(db, Room, order_by=["sort_order", "name", "id"])
        containers = await graph.list_entities(db, Container, order_by=["sort_order", "name", "id"])
        # photos, receipts and tag links arrive with the items (selectin)
        items = await graph.list_entities(db, Item, order_by=["name", "id"])
        categories = await graph.list_entities(db, Category, order_by=["sort_order", "name", "id"])
        tags = await graph.list_entities(db, Tag, order_by=["name", "id"])
        photos = await graph.list_entities(db, ItemPhoto, order_by=["item_id", "sort_order", "id"])
        receipts = await graph.list_entities(db, Receipt, order_by=["created_at", "id"])

        snapshot = Snapshot(
            schema_version=CURRENT_VERSION.identifier,
            export_date=datetime.now(timezone.utc),
            app_version=self.settings.PROJECT_VERSION,
            properties=[_record(PropertyRecord, p) for p in properties],
            rooms=[_record(RoomRecord, r) for r in rooms],
            containers=[_record(ContainerRecord, c) for c in containers],
            items=[
                _record(ItemRecord, item, tag_ids=sorted((tag.id for tag in item.tag_objects), key=str))
                for item in items
            ],
            categories=[_record(CategoryRecord, c) for c in categories],
            tags=[_record(TagRecord, t) for t in tags],
            photos=[_record(PhotoRecord, p) for p in photos],
            receipts=[_record(ReceiptRecord, r) for r in receipts],
        )
        logger.info(f"Built snapshot: {snapshot.counts()}")
        return snapshot

    async def export(self, db: AsyncSession, export_format: ExportFormat) -> str:
        export_format = ExportFormat(export_format)
        if export_format is ExportFormat.ZIP:
            raise ValueError("Archives carry photo files; build them with export_archive()")
        if export_format is ExportFormat.JSON:
            return render_json(await self.snapshot(db))
        items = await graph.list_entities(
            db, Item, order_by=["name", "id"], prefetch=("category", "room", "container")
        )
        return render_csv(items)

    async def export_archive(self, db: AsyncSession, photos: PhotoStorage) -> bytes:
        """Snapshot plus every referenced photo file the photo store still has."""
        snapshot = await self.snapshot(db)
        identifiers = referenced_images(snapshot)
        files: Dict[str, bytes] = {}
        for identifier in identifiers:
            try:
                files[identifier] = await photos.load(identifier)
            except PhotoStorageError as e:
                logger.warning(f"Leaving photo {identifier} out of the archive: {e}")
        logger.info(f"Archiving {len(files)} of {len(identifiers)} photo file(s)")
        return await asyncio.to_thread(build_archive, render_json(snapshot), files)

    async def export_to_file(
        self,
        db: AsyncSession,
        export_format: ExportFormat,
        directory: Optional[Path] = None,
        photos: Optional[PhotoStorage] = None,
    ) -> Path:
        export_format = ExportFormat(export_format)
        if export_format is ExportFormat.ZIP:
            if photos is None:
                raise ValueError("An archive export needs a photo store")
            content = await self.export_archive(db, photos)
        else:
            content = await self.export(db, export_format)
        target = Path(directory or self.settings.backup_dir) / timestamped_filename(export_format)
        await _write_file(target, content)
        return target


async def _write_file(target: Path, content: Union[str, bytes]) -> None:
    def _write():
        target.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            target.write_bytes(content)
        else:
            target.write_text(content, encoding="utf-8")

    try:
        await asyncio.to_thread(_write)
    except OSError as e:
        logger.error(f"Failed to write {target}: {e}")
        raise BackupIOError(f"Could not write {target}", cause=e) from e
    logger.info(f"Wrote {target} ({len(content)} {'bytes' if isinstance(content, bytes) else 'chars'})")


async def write_snapshot(snapshot: Snapshot, directory: Union[str, Path]) -> Path:
    target = Path(directory) / timestamped_filename(ExportFormat.JSON)
    await _write_file(target, render_json(snapshot))
    return target


async def _read_bytes(path: Path, max_bytes: Optional[int]) -> bytes:
    def _read() -> bytes:
        if max_bytes is not None and path.stat().st_size > max_bytes:
            raise BackupFormatError(f"Backup file {path} is larger than {max_bytes} bytes")
        return path.read_bytes()

    try:
        return await asyncio.to_thread(_read)
    except OSError as e:
        logger.error(f"Failed to read {path}: {e}")
        raise BackupIOError(f"Could not read {path}", cause=e) from e


async def read_snapshot(path: Union[str, Path], max_bytes: Optional[int] = None) -> dict:
    """Raw snapshot document as written; not yet upgraded or validated."""
    path = Path(path)
    return decode_snapshot(await _read_bytes(path, max_bytes), source=str(path))


async def read_archive(path: Union[str, Path], max_bytes: Optional[int] = None) -> Tuple[dict, Dict[str, bytes]]:
    path = Path(path)
    raw = await _read_bytes(path, max_bytes)
    return await asyncio.to_thread(open_archive, raw, str(path))


def decode_snapshot(raw: bytes, source: str = "snapshot") -> dict:
    try:
        document = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise BackupFormatError(f"Backup {source} is corrupt or truncated", cause=e) from e
    if not isinstance(document, dict):
        raise BackupFormatError(f"Backup {source} does not contain a snapshot object")
    return document


def parse_snapshot(document: Union[dict, Snapshot], migrations: Optional[MigrationEngine] = None) -> Snapshot:
    """Upgrade a raw document to the newest schema, then validate its structure.

    Raises MigrationError for versions with no migration path and
    BackupFormatError for anything structurally wrong.
    """
    migrations = migrations or MigrationEngine()
    if isinstance(document, Snapshot):
        if document.schema_version == migrations.newest.identifier:
            return document
        document = document.to_document()

    try:
        upgraded = migrations.upgrade_snapshot(document)
    except MigrationError:
        raise
    except (AttributeError, TypeError) as e:
        raise BackupFormatError("Snapshot collections are malformed", cause=e) from e
    try:
        return Snapshot.model_validate(upgraded)
    except ValidationError as e:
        raise BackupFormatError("Snapshot is malformed", cause=e) from e
