# backend/routes/orders.py
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from database import get_db
from models.order import Order
from models.users import User
from schemas.order import CheckoutRequest, OrderItemOut, OrderResponse, OrderStatusPatch
from services import order_service
from services.notifications import NotificationSender, get_notifier
from utils.audit import write_log, client_ip
from utils.tokenJWT import get_current_user, role_required
from routes.qr import qr_to_out

router = APIRouter(prefix="/orders", tags=["Orders"])

# Map Order model to OrderResponse schema
def _order_to_out(order: Order) -> OrderResponse:
    items: List[OrderItemOut] = []
    for it in order.items:
        items.append(OrderItemOut(
            id=it.id,
            product_id=it.product_id,
            product_name=it.product_name, # captured at purchase time
            product_image=it.product_image,
            quantity=it.quantity,
            price=it.price,
            line_total=round(it.quantity * it.price, 2)
        ))
    return OrderResponse(
        id=order.id,
        order_number=order.order_number,
        user_id=order.user_id,
        status=order.status,
        total_amount=round(order.total_amount, 2),
        shipping_address=order.shipping_address,
        billing_address=order.billing_address,
        payment_method=order.payment_method,
        payment_status=order.payment_status,
        created_at=order.created_at,
        updated_at=order.updated_at,
        items=items,
        qr_codes=[qr_to_out(qr) for qr in order.qr_codes],
    )


# Checkout: turn the current cart into an order
@router.post("", response_model=OrderResponse)
def create_order(
    payload: CheckoutRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    notifier: NotificationSender = Depends(get_notifier),
):
    order = order_service.checkout(db, current_user.id, payload, notifier)
    out = _order_to_out(order)
    write_log(
        db, user_id=current_user.id, action="ORDER_CREATE", resource="orders", status="SUCCESS",
        ip=client_ip(request),
        meta={"order_id": out.id, "order_number": out.order_number, "total": out.total_amount,
              "lines": len(out.items)},
    )
    return out


# List orders: customers see their own, admins see all
@router.get("", response_model=List[OrderResponse])
def list_orders(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    user_filter = None if current_user.is_admin else current_user.id
    return [_order_to_out(o) for o in order_service.list_orders(db, user_filter)]


# Get details of a specific order (owner or admin)
@router.get("/{order_id}", response_model=OrderResponse)
def get_order_detail(
    order_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    order = order_service.get_order(db, order_id)
    if order.user_id != current_user.id and not current_user.is_admin:
        raise HTTPException(status_code=403, detail="Access denied")
    return _order_to_out(order)


# Change order status (admin only); delivering retires the order's codes
@router.put("/{order_id}/status", response_model=OrderResponse)
def update_order_status(
    order_id: int,
    payload: OrderStatusPatch,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required("admin"))
):
    old_status = order_service.get_order(db, order_id).status
    order = order_service.update_status(db, order_id, payload.status)
    out = _order_to_out(order)
    write_log(db, user_id=current_user.id, action="ORDER_STATUS_CHANGE", resource="orders", status="SUCCESS",
              ip=client_ip(request), meta={"order_id": order_id, "old": old_status, "new": out.status})
    return out
