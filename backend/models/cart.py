# backend/models/cart.py
from sqlalchemy import Column, Integer, ForeignKey, DateTime, UniqueConstraint, CheckConstraint, func
from sqlalchemy.orm import relationship
from database import Base

# A single product + quantity in a user's cart
class CartItem(Base):
    __tablename__ = "cart_items" # Table name

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False) # Owner of the cart
    product_id = Column(Integer, ForeignKey("products.id"), index=True, nullable=False) # Foreign key to product
    quantity = Column(Integer, CheckConstraint("quantity >= 1"), nullable=False, default=1) # Product quantity
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    product = relationship("Product") # Relationship to Product

    __table_args__ = (
        # Adding the same product again bumps the quantity instead of adding a row
        UniqueConstraint("user_id", "product_id", name="uq_cartitem_user_product"),
    )
