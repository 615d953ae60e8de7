import uuid
from sqlalchemy import Column, String, Integer, Boolean, ForeignKey, false
from sqlalchemy.orm import relationship

from homeledger.db.base_class import Base
from homeledger.db.types import GUID

DEFAULT_ROOMS = [
    ("Living Room", "sofa.fill"),
    ("Kitchen", "refrigerator.fill"),
    ("Bedroom", "bed.double.fill"),
    ("Bathroom", "shower.fill"),
    ("Office", "desktopcomputer"),
    ("Garage", "car.fill"),
    ("Basement", "stairs"),
    ("Attic", "house.fill"),
    ("Dining Room", "fork.knife"),
    ("Closet", "tshirt.fill"),
    ("Outdoor", "tree.fill"),
    ("Other", "questionmark.folder.fill"),
]


class Room(Base):
    # __tablename__ will be 'rooms'

    id = Column(GUID(), primary_key=True, default=uuid.uuid4, index=True)
    name = Column(String(255), nullable=False, index=True)
    icon_name = Column(String(64), nullable=False, default="door.left.hand.closed")
    sort_order = Column(Integer, nullable=False, default=0)
    # Default rooms are protected from deletion by the API, not by the store
    is_default = Column(
        Boolean, nullable=False, default=False, server_default=false(),
        info={"added_in": "1.1.0"}
    )

    # Optional so rooms created before properties existed stay valid
    property_id = Column(
        GUID(), ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=True, index=True, info={"added_in": "1.2.0"}
    )
    property = relationship("Property", back_populates="rooms")

    containers = relationship(
        "Container",
        back_populates="room",
        cascade="all, delete-orphan",
        order_by="Container.sort_order"
    )
    # No delete cascade: removing a room clears item.room_id instead
    items = relationship("Item", back_populates="room")

    def __repr__(self):
        return f"<Room(id={self.id}, name='{self.name}')>"
