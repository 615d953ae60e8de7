import uuid
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from homeledger.db.base_class import Base, utcnow
from homeledger.db.types import GUID


class ItemPhoto(Base):
    # __tablename__ will be 'item_photos'

    id = Column(GUID(), primary_key=True, default=uuid.uuid4, index=True)
    item_id = Column(GUID(), ForeignKey("items.id", ondelete="CASCADE"), nullable=False, index=True)
    image_identifier = Column(String(255), nullable=False) # Opaque reference owned by the photo store
    sort_order = Column(Integer, nullable=False, default=0)
    is_primary = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    item = relationship("Item", back_populates="photos")

    def __repr__(self):
        return f"<ItemPhoto(id={self.id}, item_id={self.item_id}, image='{self.image_identifier}')>"
