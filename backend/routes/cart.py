# backend/routes/cart.py
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from schemas.cart import CartAddItem, CartUpdateItem, CartOut, CartItemOut
from services import cart_service
from utils.audit import write_log, client_ip
from utils.tokenJWT import get_current_user

router = APIRouter(prefix="/cart", tags=["Cart"])

def _cart_to_out(db: Session, user_id: int) -> CartOut:
    items = cart_service.list_items(db, user_id)
    items_out = []
    for it in items:
        unit_price = it.product.effective_price # live price, not a snapshot
        items_out.append(CartItemOut(
            id=it.id,
            product_id=it.product_id,
            name=it.product.name,
            image_url=it.product.image_url,
            quantity=it.quantity,
            unit_price=round(unit_price, 2),
            line_total=round(unit_price * it.quantity, 2),
            stock_quantity=it.product.stock_quantity,
        ))
    return CartOut(items=items_out, total=cart_service.cart_total(items))

@router.get("", response_model=CartOut)
def get_cart(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return _cart_to_out(db, current_user.id)

@router.post("", response_model=CartOut)
def add_to_cart(
    payload: CartAddItem,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    item = cart_service.add_item(db, current_user.id, payload.product_id, payload.quantity)
    write_log(
        db,
        user_id=current_user.id,
        action="CART_ADD",
        resource="cart",
        status="SUCCESS",
        ip=client_ip(request),
        meta={"product_id": payload.product_id, "qty": payload.quantity, "line_qty": item.quantity},
    )
    return _cart_to_out(db, current_user.id)

@router.put("/{item_id}", response_model=CartOut)
def update_cart_item(
    item_id: int,
    payload: CartUpdateItem,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    cart_service.set_quantity(db, item_id, payload.quantity, user_id=current_user.id)
    write_log(
        db,
        user_id=current_user.id,
        action="CART_UPDATE",
        resource="cart",
        status="SUCCESS",
        ip=client_ip(request),
        meta={"item_id": item_id, "qty": payload.quantity},
    )
    return _cart_to_out(db, current_user.id)

@router.delete("/{item_id}", response_model=CartOut)
def delete_cart_item(
    item_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    cart_service.remove_item(db, item_id, user_id=current_user.id)
    write_log(
        db,
        user_id=current_user.id,
        action="CART_DELETE",
        resource="cart",
        status="SUCCESS",
        ip=client_ip(request),
        meta={"item_id": item_id},
    )
    return _cart_to_out(db, current_user.id)

@router.delete("", response_model=CartOut)
def clear_cart(
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    cart_service.clear(db, current_user.id)
    write_log(db, user_id=current_user.id, action="CART_CLEAR", resource="cart",
              status="SUCCESS", ip=client_ip(request))
    return _cart_to_out(db, current_user.id)
