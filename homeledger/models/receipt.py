import uuid
from sqlalchemy import Column, String, Text, Float, Date, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from homeledger.db.base_class import Base, utcnow
from homeledger.db.types import GUID, ExactDecimal


class Receipt(Base):
    # __tablename__ will be 'receipts'

    id = Column(GUID(), primary_key=True, default=uuid.uuid4, index=True)
    image_identifier = Column(String(255), nullable=False)
    vendor = Column(String(255), nullable=True)
    total = Column(ExactDecimal(), nullable=True)
    tax_amount = Column(ExactDecimal(), nullable=True)
    purchase_date = Column(Date, nullable=True)
    raw_text = Column(Text, nullable=True)
    # Stored exactly as the recognizer reported it, out-of-range values included
    confidence = Column(Float, nullable=False, default=0.0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    linked_item_id = Column(GUID(), ForeignKey("items.id", ondelete="SET NULL"), nullable=True, index=True)
    linked_item = relationship("Item", back_populates="receipts")

    def __repr__(self):
        return f"<Receipt(id={self.id}, vendor='{self.vendor}')>"
