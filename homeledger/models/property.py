import uuid
from sqlalchemy import Column, String, Text, Integer, Boolean, DateTime
from sqlalchemy.orm import relationship

from homeledger.db.base_class import Base, utcnow
from homeledger.db.types import GUID

DEFAULT_PROPERTY_NAME = "My Home"
DEFAULT_PROPERTY_ICON = "house.fill"
DEFAULT_PROPERTY_COLOR = "#007AFF"


class Property(Base):
    __tablename__ = "properties"
    __table_args__ = {"info": {"added_in": "1.2.0"}}

    id = Column(GUID(), primary_key=True, default=uuid.uuid4, index=True)
    name = Column(String(255), nullable=False, index=True)
    address = Column(Text, nullable=True)
    icon_name = Column(String(64), nullable=False, default=DEFAULT_PROPERTY_ICON)
    color_hex = Column(String(9), nullable=False, default=DEFAULT_PROPERTY_COLOR)
    sort_order = Column(Integer, nullable=False, default=0)
    is_default = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    # Deleting a property deletes its rooms (and, through Room, their containers)
    rooms = relationship(
        "Room",
        back_populates="property",
        cascade="all, delete-orphan",
        order_by="Room.sort_order"
    )

    def __repr__(self):
        return f"<Property(id={self.id}, name='{self.name}')>"
