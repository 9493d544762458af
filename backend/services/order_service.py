# backend/services/order_service.py
import logging
import secrets
import time
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload, selectinload

from config import settings
from models.order import Order, OrderItem, OrderStatus
from models.qr_code import QrCode
from models.users import User
from schemas.order import CheckoutRequest
from services import cart_service, inventory_service, qr_service
from services.concurrency import commit
from services.errors import (
    EmptyCartError, InvalidStatusTransition, NotFoundError, OutOfStockError,
    StorageError, ValidationError,
)
from services.notifications import NotificationSender, notify_safely

logger = logging.getLogger(__name__)

# Legal status moves; delivered and cancelled are terminal
ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}


def generate_order_number() -> str:
    # Millisecond clock plus a random tail; the unique index is the final guard
    return f"{settings.ORDER_NUMBER_PREFIX}{int(time.time() * 1000)}{secrets.randbelow(10000):04d}"


def _order_query(db: Session):
    return db.query(Order).options(
        selectinload(Order.items).joinedload(OrderItem.product),
        selectinload(Order.qr_codes),
    )


def checkout(
    db: Session,
    user_id: int,
    payload: CheckoutRequest,
    notifier: Optional[NotificationSender] = None,
) -> Order:
    """
    Turn the user's cart into an order.

    Order, lines, unit claims, authentication codes and the cart clear are
    one transaction: on failure nothing is written and the cart stays as it
    was. A line whose product has no available unit still gets a code, with
    an empty serial.
    """
    cart_items = cart_service.list_items(db, user_id)
    if not cart_items:
        raise EmptyCartError("Cart is empty")

    total = cart_service.cart_total(cart_items)

    order = Order(
        user_id=user_id,
        order_number=generate_order_number(),
        status=OrderStatus.PROCESSING.value,
        total_amount=total,
        shipping_address=payload.shipping_address,
        billing_address=payload.billing_address,
        payment_method=payload.payment_method or "credit_card",
        payment_status="completed", # no payment gateway, checkout counts as paid
        notes=payload.notes,
    )
    order.items = [
        OrderItem(
            product_id=ci.product_id,
            quantity=ci.quantity,
            price=ci.product.effective_price,
            product_name=ci.product.name,
            product_image=ci.product.image_url,
        )
        for ci in cart_items
    ]

    lines = []
    try:
        db.add(order)
        db.flush()

        for item in order.items:
            try:
                unit = inventory_service.assign_unit(db, item.product_id, order.id)
            except OutOfStockError:
                logger.warning("Order %s: no unit left for product %s, line ships without serial",
                               order.order_number, item.product_id)
                unit = None

            qr = qr_service.issue(db, order.id, item.product_id, user_id,
                                  unit.serial_number if unit else "")
            lines.append({
                "product_name": item.product_name,
                "quantity": item.quantity,
                "price": item.price,
                "product_image": item.product_image,
                "serial_number": unit.serial_number if unit else None,
                "security_code_image": unit.security_code_image_url if unit else None,
                "certificate": unit.certificate_url if unit else None,
                "qr_code": qr.code,
                "verification_url": qr_service.verification_url(qr.code),
            })

        cart_service.clear(db, user_id, autocommit=False)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Checkout for user %s failed: %s", user_id, exc)
        raise StorageError("Failed to create order") from exc

    logger.info("Order %s created for user %s: %d lines, total %.2f",
                order.order_number, user_id, len(lines), total)

    user = db.get(User, user_id)
    if notifier is not None and user is not None and user.email:
        notify_safely("order_confirmation", notifier.send_order_confirmation, user.email, order, lines)

    return get_order(db, order.id)


def get_order(db: Session, order_id: int) -> Order:
    order = _order_query(db).filter(Order.id == order_id).populate_existing().first()
    if not order:
        raise NotFoundError("Order not found")
    return order


def list_orders(db: Session, user_id: Optional[int] = None) -> List[Order]:
    query = _order_query(db)
    if user_id is not None:
        query = query.filter(Order.user_id == user_id)
    return query.order_by(Order.created_at.desc(), Order.id.desc()).all()


def update_status(db: Session, order_id: int, new_status: str) -> Order:
    try:
        target = OrderStatus(new_status)
    except ValueError:
        raise ValidationError(f"Unknown order status: {new_status}")

    order = db.get(Order, order_id)
    if not order:
        raise NotFoundError("Order not found")

    current = OrderStatus(order.status)
    if target != current:
        if target not in ALLOWED_TRANSITIONS[current]:
            raise InvalidStatusTransition(f"Cannot change status from {current.value} to {target.value}")
        order.status = target.value
        commit(db)
        logger.info("Order %s status %s -> %s", order.order_number, current.value, target.value)

    # Re-delivering finishes a retirement that failed part way
    if target == OrderStatus.DELIVERED:
        codes = [
            c for (c,) in db.query(QrCode.code)
            .filter(QrCode.order_id == order_id, QrCode.is_active.is_(True))
            .all()
        ]
        for code in codes:
            qr_service.deactivate(db, code)
        logger.info("Order %s delivered, %d authentication codes retired", order.order_number, len(codes))

    return get_order(db, order_id)
