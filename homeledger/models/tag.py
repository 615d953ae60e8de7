import uuid
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Table
from sqlalchemy.orm import relationship

from homeledger.db.base_class import Base, utcnow
from homeledger.db.types import GUID

DEFAULT_FAVORITE_TAGS = [
    ("Essential", "#34C759"),
    ("High Value", "#FF9500"),
    ("Electronics", "#007AFF"),
    ("Insurance-Critical", "#FF3B30"),
]

# Many-to-many link; rows vanish with either side
item_tags = Table(
    "item_tags",
    Base.metadata,
    Column("item_id", GUID(), ForeignKey("items.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", GUID(), ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)


class Tag(Base):
    # __tablename__ will be 'tags'

    id = Column(GUID(), primary_key=True, default=uuid.uuid4, index=True)
    name = Column(String(100), nullable=False, index=True)
    color_hex = Column(String(7), nullable=False, default="#007AFF")
    is_favorite = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    items = relationship("Item", secondary=item_tags, back_populates="tag_objects")

    def __repr__(self):
        return f"<Tag(id={self.id}, name='{self.name}')>"
