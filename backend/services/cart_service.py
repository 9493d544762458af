# backend/services/cart_service.py
import logging
from typing import List, Optional

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from models.cart import CartItem
from models.product import Product
from services.concurrency import commit
from services.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def _increment(db: Session, user_id: int, product_id: int, quantity: int) -> int:
    # Single UPDATE so concurrent adds cannot overwrite each other
    result = db.execute(
        update(CartItem)
        .where(CartItem.user_id == user_id, CartItem.product_id == product_id)
        .values(quantity=CartItem.quantity + quantity, updated_at=func.now())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


def _get_line(db: Session, user_id: int, product_id: int) -> CartItem:
    return (
        db.query(CartItem)
        .options(joinedload(CartItem.product))
        .filter(CartItem.user_id == user_id, CartItem.product_id == product_id)
        .populate_existing()
        .one()
    )


def add_item(db: Session, user_id: int, product_id: int, quantity: int = 1) -> CartItem:
    """Add a product, merging into the existing line for (user, product)."""
    quantity = max(int(quantity or 1), 1)

    if db.get(Product, product_id) is None:
        raise NotFoundError("Product not found")

    if _increment(db, user_id, product_id, quantity) == 0:
        db.add(CartItem(user_id=user_id, product_id=product_id, quantity=quantity))
        try:
            db.commit()
        except IntegrityError:
            # Another request inserted the line first
            db.rollback()
            _increment(db, user_id, product_id, quantity)
            commit(db)
    else:
        commit(db)

    return _get_line(db, user_id, product_id)


def _find_item(db: Session, item_id: int, user_id: Optional[int]) -> Optional[CartItem]:
    query = db.query(CartItem).filter(CartItem.id == item_id)
    if user_id is not None:
        query = query.filter(CartItem.user_id == user_id)
    return query.first()


def set_quantity(db: Session, item_id: int, quantity: int, user_id: Optional[int] = None) -> CartItem:
    if quantity is None or quantity < 1:
        raise ValidationError("Invalid quantity")

    item = _find_item(db, item_id, user_id)
    if not item:
        raise NotFoundError("Cart item not found")

    item.quantity = quantity
    commit(db)
    db.refresh(item)
    return item


def remove_item(db: Session, item_id: int, user_id: Optional[int] = None) -> None:
    query = db.query(CartItem).filter(CartItem.id == item_id)
    if user_id is not None:
        query = query.filter(CartItem.user_id == user_id)
    query.delete(synchronize_session=False)
    commit(db)


def clear(db: Session, user_id: int, *, autocommit: bool = True) -> None:
    db.query(CartItem).filter(CartItem.user_id == user_id).delete(synchronize_session=False)
    if autocommit:
        commit(db)


def list_items(db: Session, user_id: int) -> List[CartItem]:
    # Prices come from the live product row, unlike order lines
    return (
        db.query(CartItem)
        .options(joinedload(CartItem.product))
        .filter(CartItem.user_id == user_id)
        .order_by(CartItem.id)
        .all()
    )


def cart_total(items: List[CartItem]) -> float:
    return round(sum(item.product.effective_price * item.quantity for item in items), 2)
