"""Restore engine.

Applies a snapshot to a live store with an explicitly chosen strategy:

- REPLACE wipes the live graph and inserts every snapshot entity with a new
  id, all inside one transaction. Any failure or cancellation rolls back to
  the store as it was.
- MERGE matches each snapshot entity to a live one by natural key (ids from
  another store mean nothing here). Matched rows take the snapshot's scalar
  values and gain its relationships; unmatched rows are inserted with new
  ids; ambiguous matches are skipped and reported. A live row is matched by
  at most one record of the snapshot (tags aside, their names are unique), so
  two snapshot records sharing a natural key stay two entities. Every entity
  commits on its own, so ``last_summary`` always says how far a cancelled
  merge got.

Entity types are processed parents first: properties, categories, tags,
rooms, containers, items, photos, receipts.
"""
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple, Union

from pydantic import ValidationError
from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from homeledger.core.config import Settings
from homeledger.core.exceptions import BackupFormatError, EntityValidationError, IntegrityViolation, PhotoStorageError
from homeledger.crud import graph
from homeledger.crud.crud_item import get_items_by_natural_key
from homeledger.db.session import Store
from homeledger.migrations import MigrationEngine
from homeledger.models import Category, Container, Item, ItemPhoto, Property, Receipt, Room, Tag, item_tags
from homeledger.schemas.backup import Snapshot
from homeledger.schemas.category import CategoryCreate
from homeledger.schemas.container import ContainerCreate
from homeledger.schemas.item import ItemCreate, ItemPhotoCreate
from homeledger.schemas.property import PropertyCreate
from homeledger.schemas.receipt import ReceiptCreate
from homeledger.schemas.restore import RestoreStrategy, RestoreSummary
from homeledger.schemas.room import RoomCreate
from homeledger.schemas.tag import TagCreate
from homeledger.services.backup import parse_snapshot, read_archive, read_snapshot, referenced_images
from homeledger.services.file_access import FileAccessProvider, LocalFileAccess, PathLike
from homeledger.services.photo_storage import PhotoStorage

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, RestoreSummary], Awaitable[None]]


@dataclass(frozen=True)
class EntityPlan:
    entity_type: str
    collection: str  # Attribute on Snapshot
    model: Any
    schema: Any  # Create schema that validates the record's fields
    links: Tuple[Tuple[str, str], ...] = ()  # (record field, referenced entity type)
    tag_links: bool = False


ENTITY_PLANS = (
    EntityPlan("property", "properties", Property, PropertyCreate),
    EntityPlan("category", "categories", Category, CategoryCreate),
    EntityPlan("tag", "tags", Tag, TagCreate),
    EntityPlan("room", "rooms", Room, RoomCreate, links=(("property_id", "property"),)),
    EntityPlan("container", "containers", Container, ContainerCreate, links=(("room_id", "room"),)),
    EntityPlan(
        "item", "items", Item, ItemCreate,
        links=(("category_id", "category"), ("room_id", "room"), ("container_id", "container")),
        tag_links=True,
    ),
    EntityPlan("photo", "photos", ItemPhoto, ItemPhotoCreate, links=(("item_id", "item"),)),
    EntityPlan("receipt", "receipts", Receipt, ReceiptCreate, links=(("linked_item_id", "item"),)),
)

# Bottom-up wipe order for REPLACE
_WIPE_ORDER = (item_tags, ItemPhoto.__table__, Receipt.__table__, Item.__table__,
               Container.__table__, Room.__table__, Property.__table__, Tag.__table__, Category.__table__)

_TIMESTAMP_FIELDS = ("created_at", "updated_at")

# Names are unique per store, so every record with the name lands on the same row
_NAME_UNIQUE_TYPES = ("tag",)


@dataclass
class PreparedRecord:
    plan: EntityPlan
    record: Any
    values: Dict[str, Any]  # Validated scalar fields
    timestamps: Dict[str, Any] = field(default_factory=dict)


def _link_fields(plan: EntityPlan) -> Set[str]:
    names = {name for name, _ in plan.links}
    if plan.tag_links:
        names.add("tag_ids")
    return names


def _validation_message(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in detail['loc'])}: {detail['msg']}" for detail in error.errors()
    )


def prepare_snapshot(snapshot: Snapshot, summary: RestoreSummary) -> List[PreparedRecord]:
    """Validate every record up front.

    Records that break a field rule or reference an id missing from the
    snapshot go to ``summary.errors`` and are left out of the result.
    """
    known_ids = {
        plan.entity_type: {record.id for record in getattr(snapshot, plan.collection)}
        for plan in ENTITY_PLANS
    }
    prepared = []
    for plan in ENTITY_PLANS:
        schema_fields = set(plan.schema.model_fields) - _link_fields(plan)
        for record in getattr(snapshot, plan.collection):
            dangling = [
                f"{ref_type} {getattr(record, name)}"
                for name, ref_type in plan.links
                if getattr(record, name) is not None and getattr(record, name) not in known_ids[ref_type]
            ]
            if plan.tag_links:
                dangling += [f"tag {tag_id}" for tag_id in record.tag_ids if tag_id not in known_ids["tag"]]
            if dangling:
                summary.record_error(plan.entity_type, record.id, f"references unknown {', '.join(dangling)}")
                continue
            try:
                validated = plan.schema(**record.model_dump(include=schema_fields))
            except ValidationError as e:
                summary.record_error(plan.entity_type, record.id, _validation_message(e))
                continue
            timestamps = {
                name: getattr(record, name)
                for name in _TIMESTAMP_FIELDS
                if hasattr(record, name) and getattr(record, name) is not None and hasattr(plan.model, name)
            }
            prepared.append(PreparedRecord(plan, record, validated.model_dump(include=schema_fields), timestamps))
    return prepared


class RestoreEngine:
    def __init__(
        self,
        store: Store,
        settings: Optional[Settings] = None,
        *,
        migrations: Optional[MigrationEngine] = None,
        file_access: Optional[FileAccessProvider] = None,
        on_progress: Optional[ProgressCallback] = None,
    ):
        self.store = store
        self.settings = settings
        self.migrations = migrations or MigrationEngine()
        self.file_access = file_access or LocalFileAccess()
        self.on_progress = on_progress
        self.last_summary: Optional[RestoreSummary] = None

    async def _progress(self, entity_type: str, summary: RestoreSummary) -> None:
        if self.on_progress is not None:
            await self.on_progress(entity_type, summary)

    async def restore_file(self, path: PathLike, strategy: RestoreStrategy) -> RestoreSummary:
        """Read, upgrade and apply a snapshot file.

        Unreadable, corrupt or truncated files fail with BackupIOError (or its
        BackupFormatError subclass) before the store is touched.
        """
        strategy = RestoreStrategy(strategy)
        max_bytes = self.settings.MAX_BACKUP_BYTES if self.settings else None
        async with self.file_access.access(path) as readable:
            document = await read_snapshot(readable, max_bytes=max_bytes)
        snapshot = parse_snapshot(document, self.migrations)
        return await self.restore(snapshot, strategy)

    async def restore_archive(
        self, path: PathLike, strategy: RestoreStrategy, photos: PhotoStorage
    ) -> RestoreSummary:
        """Restore a ZIP backup: the snapshot first, then its photo files."""
        strategy = RestoreStrategy(strategy)
        max_bytes = self.settings.MAX_BACKUP_BYTES if self.settings else None
        async with self.file_access.access(path) as readable:
            document, files = await read_archive(readable, max_bytes=max_bytes)
        return await self.restore_bundle(document, files, strategy, photos)

    async def restore_bundle(
        self,
        document: Union[Snapshot, dict],
        files: Dict[str, bytes],
        strategy: RestoreStrategy,
        photos: PhotoStorage,
    ) -> RestoreSummary:
        """Apply a snapshot, then hand the photo files it references to the photo store.

        Files are only written once the snapshot has been applied, so a
        rejected or rolled back restore leaves the photo store untouched.
        """
        snapshot = parse_snapshot(document, self.migrations)
        summary = await self.restore(snapshot, strategy)

        wanted = set(referenced_images(snapshot))
        for identifier in sorted(files):
            if identifier not in wanted:
                logger.warning(f"Archive photo {identifier} is not referenced by the snapshot; ignored")
                continue
            try:
                await photos.save(identifier, files[identifier])
            except PhotoStorageError as e:
                summary.record_error("photo", None, str(e))
                continue
            summary.photo_files_restored += 1
        missing = wanted - set(files)
        if missing:
            logger.warning(f"{len(missing)} referenced photo file(s) were not in the archive")
        logger.info(f"Restored {summary.photo_files_restored} photo file(s)")
        return summary

    async def restore(self, snapshot: Union[Snapshot, dict], strategy: RestoreStrategy) -> RestoreSummary:
        strategy = RestoreStrategy(strategy)
        snapshot = parse_snapshot(snapshot, self.migrations)
        summary = RestoreSummary(strategy=strategy)
        self.last_summary = summary
        logger.info(f"Starting {strategy.value} restore of {snapshot.counts()}")

        if strategy is RestoreStrategy.REPLACE:
            await self._replace(snapshot, summary)
        else:
            await self._merge(snapshot, summary)

        summary.completed = True
        logger.info(f"Restore finished: {summary.summary_text}")
        return summary

    # --- Replace ---

    async def _replace(self, snapshot: Snapshot, summary: RestoreSummary) -> None:
        prepared = prepare_snapshot(snapshot, summary)
        _check_unique_tag_names(prepared, summary)
        if summary.errors:
            raise BackupFormatError(
                f"Snapshot failed validation with {len(summary.errors)} invalid record(s); nothing was restored"
            )

        async with self.store.writer() as db:
            try:
                for table in _WIPE_ORDER:
                    await db.execute(delete(table))
                logger.info("Cleared live graph for replace restore")

                new_ids: Dict[uuid.UUID, uuid.UUID] = {}
                objects: Dict[uuid.UUID, Any] = {}
                current_type = None
                for entry in prepared:
                    if entry.plan.entity_type != current_type:
                        if current_type is not None:
                            await db.flush()
                        current_type = entry.plan.entity_type

                    new_id = uuid.uuid4()
                    new_ids[entry.record.id] = new_id
                    obj = entry.plan.model(id=new_id, **entry.values, **entry.timestamps)
                    for name, _ in entry.plan.links:
                        old = getattr(entry.record, name)
                        setattr(obj, name, new_ids[old] if old is not None else None)
                    if entry.plan.tag_links:
                        obj.tag_objects = [objects[tag_id] for tag_id in dict.fromkeys(entry.record.tag_ids)]
                    db.add(obj)
                    objects[entry.record.id] = obj
                    summary.record_created(entry.plan.entity_type)
                    await self._progress(entry.plan.entity_type, summary)

                await db.flush()
                orphans = await graph.find_orphans(db)
                if orphans:
                    raise IntegrityViolation(f"Replace restore left orphans: {'; '.join(orphans)}")
                await db.commit()
            except BaseException:
                # Nothing was committed; the summary must not claim otherwise
                summary.created.clear()
                logger.warning("Replace restore rolled back; live store left unchanged")
                raise

    # --- Merge ---

    async def _merge(self, snapshot: Snapshot, summary: RestoreSummary) -> None:
        prepared = prepare_snapshot(snapshot, summary)
        live_ids: Dict[uuid.UUID, uuid.UUID] = {}
        # Live rows already taken by a record of this snapshot -> True when this merge inserted them
        claimed: Dict[uuid.UUID, bool] = {}
        not_restored: Dict[uuid.UUID, str] = {
            uuid.UUID(issue.source_id): issue.entity_type for issue in summary.errors if issue.source_id
        }

        async with self.store.writer() as db:
            for entry in prepared:
                entity_type = entry.plan.entity_type
                record_id = entry.record.id

                missing_parent = _unrestored_reference(entry, not_restored)
                if missing_parent:
                    summary.record_skipped(entity_type, record_id, f"{missing_parent} was not restored")
                    not_restored[record_id] = entity_type
                    continue

                links = {
                    name: live_ids[getattr(entry.record, name)] if getattr(entry.record, name) is not None else None
                    for name, _ in entry.plan.links
                }
                tag_ids = (
                    list(dict.fromkeys(live_ids[tag_id] for tag_id in entry.record.tag_ids))
                    if entry.plan.tag_links else []
                )

                candidates = await _find_matches(db, entry, links)
                if entity_type not in _NAME_UNIQUE_TYPES:
                    unclaimed = [obj for obj in candidates if obj.id not in claimed]
                    if candidates and not unclaimed:
                        if not all(claimed[obj.id] for obj in candidates):
                            summary.record_skipped(
                                entity_type, record_id,
                                f"existing {entity_type} '{_natural_key_label(entry)}' was already merged "
                                f"with another record of this backup",
                            )
                            not_restored[record_id] = entity_type
                            continue
                        # Same natural key as a record inserted earlier in this merge: a distinct entity
                    candidates = unclaimed
                if len(candidates) > 1:
                    summary.record_skipped(
                        entity_type, record_id,
                        f"{len(candidates)} existing {entity_type} records match '{_natural_key_label(entry)}'",
                    )
                    not_restored[record_id] = entity_type
                    continue

                try:
                    if candidates:
                        obj = candidates[0]
                        await _apply_merge(db, obj, entry, links, tag_ids)
                        await _demote_other_primary_photos(db, obj, entity_type)
                        await db.commit()
                        claimed.setdefault(obj.id, False)
                        summary.record_updated(entity_type)
                    else:
                        obj = entry.plan.model(id=uuid.uuid4(), **entry.values, **entry.timestamps)
                        for name, value in links.items():
                            setattr(obj, name, value)
                        if entry.plan.tag_links:
                            obj.tag_objects = await _load_tags(db, tag_ids)
                        db.add(obj)
                        await _demote_other_primary_photos(db, obj, entity_type)
                        await db.commit()
                        claimed[obj.id] = True
                        summary.record_created(entity_type)
                except (SQLAlchemyError, EntityValidationError) as e:
                    await db.rollback()
                    logger.error(f"Merge of {entity_type} {record_id} failed: {e}")
                    summary.record_error(entity_type, record_id, str(e))
                    not_restored[record_id] = entity_type
                    continue

                live_ids[record_id] = obj.id
                await self._progress(entity_type, summary)


def _check_unique_tag_names(prepared: List[PreparedRecord], summary: RestoreSummary) -> None:
    seen: Dict[str, uuid.UUID] = {}
    for entry in prepared:
        if entry.plan.entity_type != "tag":
            continue
        key = entry.values["name"].lower()
        if key in seen:
            summary.record_error("tag", entry.record.id, f"duplicate tag name '{entry.values['name']}'")
        else:
            seen[key] = entry.record.id


def _unrestored_reference(entry: PreparedRecord, not_restored: Dict[uuid.UUID, str]) -> Optional[str]:
    for name, ref_type in entry.plan.links:
        ref = getattr(entry.record, name)
        if ref is not None and ref in not_restored:
            return f"{ref_type} {ref}"
    if entry.plan.tag_links:
        for tag_id in entry.record.tag_ids:
            if tag_id in not_restored:
                return f"tag {tag_id}"
    return None


def _natural_key_label(entry: PreparedRecord) -> str:
    values = entry.values
    if entry.plan.entity_type == "item":
        parts = [values["name"], values.get("serial_number") or "", str(values.get("purchase_date") or "")]
        return " / ".join(part for part in parts if part)
    if entry.plan.entity_type in ("photo", "receipt"):
        return values["image_identifier"]
    return values["name"]


def _equals_or_null(column, value):
    return column.is_(None) if value is None else column == value


async def _find_matches(db: AsyncSession, entry: PreparedRecord, links: Dict[str, Any]) -> list:
    entity_type = entry.plan.entity_type
    values = entry.values
    if entity_type == "item":
        return await get_items_by_natural_key(
            db,
            name=values["name"],
            serial_number=values.get("serial_number"),
            purchase_date=values.get("purchase_date"),
        )

    model = entry.plan.model
    if entity_type == "property":
        query = select(model).where(model.name == values["name"])
    elif entity_type in ("category", "tag"):
        query = select(model).where(func.lower(model.name) == values["name"].lower())
    elif entity_type == "room":
        query = select(model).where(model.name == values["name"], _equals_or_null(model.property_id, links["property_id"]))
    elif entity_type == "container":
        query = select(model).where(model.name == values["name"], _equals_or_null(model.room_id, links["room_id"]))
    elif entity_type == "photo":
        query = select(model).where(
            model.item_id == links["item_id"], model.image_identifier == values["image_identifier"]
        )
    else:
        query = select(model).where(model.image_identifier == values["image_identifier"])
    result = await db.execute(query)
    return list(result.scalars().all())


async def _load_tags(db: AsyncSession, tag_ids: List[uuid.UUID]) -> list:
    if not tag_ids:
        return []
    result = await db.execute(select(Tag).where(Tag.id.in_(tag_ids)))
    by_id = {tag.id: tag for tag in result.scalars().all()}
    return [by_id[tag_id] for tag_id in tag_ids if tag_id in by_id]


async def _apply_merge(db: AsyncSession, obj, entry: PreparedRecord, links: Dict[str, Any], tag_ids: List[uuid.UUID]) -> None:
    """Snapshot wins for scalars; relationships only ever grow."""
    for name, value in entry.values.items():
        if name == "tags":
            current = list(obj.tags or [])
            obj.tags = current + [tag for tag in value if tag not in current]
        else:
            setattr(obj, name, value)

    # A to-one link is only overwritten when the snapshot has one
    for name, value in links.items():
        if value is not None:
            setattr(obj, name, value)

    if entry.plan.tag_links:
        present = {tag.id for tag in obj.tag_objects}
        for tag in await _load_tags(db, tag_ids):
            if tag.id not in present:
                obj.tag_objects.append(tag)
                present.add(tag.id)
    obj.touch()


async def _demote_other_primary_photos(db: AsyncSession, obj, entity_type: str) -> None:
    """An item has at most one primary photo; the restored one takes the flag."""
    if entity_type != "photo" or not obj.is_primary:
        return
    await db.execute(
        update(ItemPhoto)
        .where(ItemPhoto.item_id == obj.item_id, ItemPhoto.id != obj.id)
        .values(is_primary=False)
    )
