# backend/models/qr_code.py
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, JSON, func
from sqlalchemy.orm import relationship
from database import Base

# Authentication code issued for one order line and the unit shipped with it.
# is_verified only ever goes False -> True, is_active only True -> False.
class QrCode(Base):
    __tablename__ = "qr_codes"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(36), unique=True, nullable=False, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Empty when no unit was available at checkout
    serial_number = Column(String(255), nullable=False, default="")

    is_verified = Column(Boolean, nullable=False, default=False)
    verified_at = Column(DateTime(timezone=True), nullable=True)
    verification_data = Column(JSON, nullable=True) # requester ip / user agent
    email_sent = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    order = relationship("Order", back_populates="qr_codes")
    product = relationship("Product")
    user = relationship("User")
