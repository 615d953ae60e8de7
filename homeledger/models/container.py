import uuid
from sqlalchemy import Column, String, Text, Integer, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from homeledger.db.base_class import Base, utcnow
from homeledger.db.types import GUID


class Container(Base):
    # __tablename__ will be 'containers'
    __table_args__ = {"info": {"added_in": "1.2.0"}}

    id = Column(GUID(), primary_key=True, default=uuid.uuid4, index=True)
    name = Column(String(255), nullable=False, index=True)
    icon_name = Column(String(64), nullable=False, default="shippingbox.fill")
    color_hex = Column(String(9), nullable=False, default="#8B5CF6")
    sort_order = Column(Integer, nullable=False, default=0)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    room_id = Column(GUID(), ForeignKey("rooms.id", ondelete="CASCADE"), nullable=True, index=True)
    room = relationship("Room", back_populates="containers")

    # Nullify: items drop back to room level when their container goes away
    items = relationship("Item", back_populates="container")

    def breadcrumb_path(self) -> str:
        """'Property > Room > Container'; needs room and room.property loaded."""
        components = []
        if self.room is not None:
            if self.room.property is not None:
                components.append(self.room.property.name)
            components.append(self.room.name)
        components.append(self.name)
        return " > ".join(components)

    def __repr__(self):
        return f"<Container(id={self.id}, name='{self.name}')>"
