# backend/models/order.py
import enum
from sqlalchemy import Column, Integer, String, Float, Text, ForeignKey, DateTime, JSON, func
from sqlalchemy.orm import relationship
from database import Base

class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

# Immutable record of a completed checkout; only status (and updated_at) change later
class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    order_number = Column(String(50), unique=True, nullable=False, index=True)
    status = Column(String(50), nullable=False, default=OrderStatus.PENDING.value)
    total_amount = Column(Float, nullable=False)

    # Address payloads are stored as given by the client
    shipping_address = Column(JSON, nullable=True)
    billing_address = Column(JSON, nullable=True)

    # Payment details
    payment_method = Column(String(50), nullable=True)
    payment_status = Column(String(50), default="pending")
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")
    qr_codes = relationship("QrCode", back_populates="order", cascade="all, delete-orphan")
    user = relationship("User")

# Line snapshot: price, name and image are copied at purchase time
class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Float, nullable=False)
    product_name = Column(String(255), nullable=False)
    product_image = Column(String, nullable=True)

    order = relationship("Order", back_populates="items")
    product = relationship("Product")
