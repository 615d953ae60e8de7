import uuid
from sqlalchemy import Column, String, Integer, Boolean
from sqlalchemy.orm import relationship

from homeledger.db.base_class import Base
from homeledger.db.types import GUID

DEFAULT_CATEGORIES = [
    ("Electronics", "desktopcomputer", "#007AFF"),
    ("Furniture", "sofa.fill", "#8B5CF6"),
    ("Appliances", "refrigerator.fill", "#10B981"),
    ("Clothing", "tshirt.fill", "#F59E0B"),
    ("Jewelry", "sparkles", "#EC4899"),
    ("Art & Decor", "photo.artframe", "#6366F1"),
    ("Sports & Outdoor", "sportscourt.fill", "#14B8A6"),
    ("Tools", "wrench.and.screwdriver.fill", "#64748B"),
    ("Musical Instruments", "guitars.fill", "#F97316"),
    ("Books & Media", "books.vertical.fill", "#84CC16"),
    ("Kitchenware", "fork.knife", "#EF4444"),
    ("Collectibles", "star.fill", "#A855F7"),
    ("Other", "questionmark.folder.fill", "#9CA3AF"),
]


class Category(Base):
    __tablename__ = "categories"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4, index=True)
    name = Column(String(255), nullable=False, index=True)
    icon_name = Column(String(64), nullable=False, default="folder.fill")
    color_hex = Column(String(9), nullable=False, default="#007AFF")
    is_custom = Column(Boolean, nullable=False, default=False)
    sort_order = Column(Integer, nullable=False, default=0)

    # Informational reverse link only; deleting a category clears item.category_id
    items = relationship("Item", back_populates="category")

    def __repr__(self):
        return f"<Category(id={self.id}, name='{self.name}')>"
