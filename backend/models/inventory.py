# backend/models/inventory.py
import enum
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from database import Base

# Lifecycle of a physical unit: available -> sold, never back
class UnitStatus(str, enum.Enum):
    AVAILABLE = "available"
    RESERVED = "reserved"
    SOLD = "sold"

# One physical, individually serialized item of a product
class InventoryUnit(Base):
    __tablename__ = "inventory_units"

    id = Column(Integer, primary_key=True, index=True)
    unit_id = Column(String(100), unique=True, nullable=False, index=True) # e.g. HO_3 or the SKU + sequence
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    serial_number = Column(String(255), unique=True, nullable=False, index=True)

    # Opaque URLs to uploaded files
    security_code_image_url = Column(String, nullable=True)
    certificate_url = Column(String, nullable=True)

    status = Column(String(50), nullable=False, default=UnitStatus.AVAILABLE.value, index=True)
    sold_at = Column(DateTime(timezone=True), nullable=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=True, index=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    product = relationship("Product", back_populates="units")
    order = relationship("Order")
