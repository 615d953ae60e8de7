# homeledger/schemas/__init__.py
from .property import Property, PropertyCreate, PropertyUpdate, PropertySummary
from .room import Room, RoomCreate, RoomUpdate, RoomSummary
from .container import Container, ContainerCreate, ContainerUpdate, ContainerSummary
from .category import Category, CategoryCreate, CategoryUpdate
from .tag import Tag, TagCreate, TagUpdate, TagSummary
from .receipt import Receipt, ReceiptCreate, ReceiptUpdate, ReceiptData
from .item import (
    Item, ItemCreate, ItemUpdate, ItemSummary, ItemCondition,
    ItemPhoto, ItemPhotoCreate, DocumentationReport,
)
from .backup import Snapshot
from .restore import RestoreStrategy, RestoreSummary, SkippedRecord, RestoreIssue
