import uuid
from sqlalchemy import Column, String, Text, Date, DateTime, ForeignKey, JSON, Enum as DBEnum
from sqlalchemy.orm import relationship

from homeledger.db.base_class import Base, utcnow
from homeledger.db.types import GUID, ExactDecimal
from homeledger.models.tag import item_tags
from homeledger.schemas.item import ItemCondition # Import enum for DB
from homeledger.services import scoring


class Item(Base):
    # __tablename__ will be 'items'

    id = Column(GUID(), primary_key=True, default=uuid.uuid4, index=True)
    name = Column(String(255), nullable=False, index=True)
    brand = Column(String(255), nullable=True)
    model_number = Column(String(255), nullable=True)
    serial_number = Column(String(255), nullable=True, index=True)

    purchase_price = Column(ExactDecimal(), nullable=True)
    purchase_date = Column(Date, nullable=True)
    currency_code = Column(String(3), nullable=False, default="USD")

    condition = Column(
        DBEnum(ItemCondition, name="item_condition_enum",
               values_callable=lambda enum: [member.value for member in enum]),
        nullable=False, default=ItemCondition.GOOD
    )
    condition_notes = Column(Text, nullable=True)
    notes = Column(Text, nullable=True, info={"added_in": "1.1.0"}) # Distinct from condition_notes
    warranty_expiry_date = Column(Date, nullable=True)

    # Legacy flat tag list, kept alongside the normalized Tag relationship
    tags = Column(JSON, nullable=False, default=list)

    barcode = Column(String(128), nullable=True, info={"added_in": "1.1.0"})
    estimated_value = Column(ExactDecimal(), nullable=True, info={"added_in": "1.1.0"})
    estimated_value_low = Column(ExactDecimal(), nullable=True, info={"added_in": "1.1.0"})
    estimated_value_high = Column(ExactDecimal(), nullable=True, info={"added_in": "1.1.0"})
    value_source = Column(String(255), nullable=True, info={"added_in": "1.1.0"})
    value_lookup_date = Column(DateTime(timezone=True), nullable=True, info={"added_in": "1.1.0"})

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    # Foreign Keys (all optional, none of them own the item)
    category_id = Column(GUID(), ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)
    room_id = Column(GUID(), ForeignKey("rooms.id", ondelete="SET NULL"), nullable=True, index=True)
    container_id = Column(
        GUID(), ForeignKey("containers.id", ondelete="SET NULL"),
        nullable=True, index=True, info={"added_in": "1.2.0"}
    )

    category = relationship("Category", back_populates="items")
    room = relationship("Room", back_populates="items")
    container = relationship("Container", back_populates="items")

    photos = relationship(
        "ItemPhoto",
        back_populates="item",
        cascade="all, delete-orphan", # Deleting an item deletes its photos
        order_by="ItemPhoto.sort_order",
        lazy="selectin"
    )
    receipts = relationship(
        "Receipt",
        back_populates="linked_item", # Deleting an item only unlinks its receipts
        lazy="selectin"
    )
    tag_objects = relationship(
        "Tag",
        secondary=item_tags,
        back_populates="items",
        order_by="Tag.name",
        lazy="selectin"
    )

    # Derived on every read; nothing here is stored
    @property
    def documentation_score(self) -> float:
        return scoring.score(self).value

    @property
    def missing_documentation(self) -> list:
        return scoring.score(self).missing

    @property
    def is_documented(self) -> bool:
        return scoring.is_documented(self)

    def __repr__(self):
        return f"<Item(id={self.id}, name='{self.name}')>"
