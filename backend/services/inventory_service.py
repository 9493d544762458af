# backend/services/inventory_service.py
"""
Inventory unit ledger.

Invariants:
- Product.stock_quantity == count(units of the product with status 'available').
  Every writer recomputes it from the units; nothing increments or decrements it.
- serial_number is globally unique.
- A unit moves to 'sold' exactly once, when it is bound to an order, and never back.

assign_unit claims a unit with a conditional UPDATE (compare-and-set on
status), so two checkouts racing for the last unit cannot both get it.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from models.inventory import InventoryUnit, UnitStatus
from models.order import Order
from models.product import Product
from schemas.inventory import UnitFilters
from services.concurrency import commit, lock_for_update
from services.errors import NotFoundError, OutOfStockError, ValidationError

logger = logging.getLogger(__name__)

# Upper bound on re-tries after losing a claim race to another transaction
MAX_CLAIM_ATTEMPTS = 5


def unit_prefix(product: Product) -> str:
    """SKU if present, else initials of the first two words of the name."""
    if product.sku:
        return product.sku
    words = product.name.split()[:2]
    return "".join(word[0] for word in words).upper()


def recompute_stock(db: Session, product_id: int) -> None:
    db.flush()
    available = (
        select(func.count(InventoryUnit.id))
        .where(
            InventoryUnit.product_id == product_id,
            InventoryUnit.status == UnitStatus.AVAILABLE.value,
        )
        .scalar_subquery()
    )
    db.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(stock_quantity=available)
        .execution_options(synchronize_session="fetch")
    )


def _next_unit_id(db: Session, product: Product) -> str:
    prefix = unit_prefix(product)
    n = db.query(func.count(InventoryUnit.id)).filter(InventoryUnit.product_id == product.id).scalar() + 1
    unit_id = f"{prefix}_{n}"
    # Initials can collide across products ("Razer Blade" / "Razer Basilisk")
    while db.query(InventoryUnit.id).filter(InventoryUnit.unit_id == unit_id).first():
        n += 1
        unit_id = f"{prefix}_{n}"
    return unit_id


def _conflict_message(exc: IntegrityError, serial: str, unit_id: str) -> str:
    # Both unique columns can fail here; name the one that did
    if "serial_number" in str(exc.orig):
        return f"Serial number {serial} already exists"
    return f"Unit id {unit_id} was taken by a concurrent insert, retry"


def create_unit(
    db: Session,
    product_id: int,
    serial_number: str,
    created_by: int,
    security_code_image_url: Optional[str] = None,
    certificate_url: Optional[str] = None,
) -> InventoryUnit:
    serial = (serial_number or "").strip()
    if not serial:
        raise ValidationError("Serial number is required")

    product = db.get(Product, product_id)
    if not product:
        raise NotFoundError("Product not found")

    if db.query(InventoryUnit.id).filter(InventoryUnit.serial_number == serial).first():
        raise ValidationError(f"Serial number {serial} already exists")

    unit_id = _next_unit_id(db, product)
    unit = InventoryUnit(
        unit_id=unit_id,
        product_id=product.id,
        serial_number=serial,
        security_code_image_url=security_code_image_url,
        certificate_url=certificate_url,
        status=UnitStatus.AVAILABLE.value,
        created_by=created_by,
    )
    db.add(unit)
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise ValidationError(_conflict_message(exc, serial, unit_id)) from exc
    recompute_stock(db, product.id)
    commit(db, conflict_message=f"Inventory unit {unit_id} conflicts with an existing unit")
    db.refresh(unit)

    logger.info("Inventory unit %s (serial %s) added for product %s", unit.unit_id, serial, product.id)
    return unit


def get_unit(db: Session, unit_pk: int) -> InventoryUnit:
    unit = db.query(InventoryUnit).options(joinedload(InventoryUnit.product)).filter(InventoryUnit.id == unit_pk).first()
    if not unit:
        raise NotFoundError("Inventory unit not found")
    return unit


def list_units(db: Session, filters: UnitFilters) -> List[InventoryUnit]:
    query = db.query(InventoryUnit).options(joinedload(InventoryUnit.product))
    if filters.product_id is not None:
        query = query.filter(InventoryUnit.product_id == filters.product_id)
    if filters.status is not None:
        query = query.filter(InventoryUnit.status == UnitStatus(filters.status).value)
    return query.order_by(InventoryUnit.created_at.asc(), InventoryUnit.id.asc()).all()


def assign_unit(db: Session, product_id: int, order_id: int) -> InventoryUnit:
    """
    Claim the oldest available unit of a product for an order.

    Runs inside the caller's transaction (flush only, no commit).
    Raises OutOfStockError when no unit is left.
    """
    for _ in range(MAX_CLAIM_ATTEMPTS):
        candidate = lock_for_update(
            db.query(InventoryUnit.id)
            .filter(
                InventoryUnit.product_id == product_id,
                InventoryUnit.status == UnitStatus.AVAILABLE.value,
            )
            .order_by(InventoryUnit.created_at.asc(), InventoryUnit.id.asc())
            .limit(1)
        ).scalar()
        if candidate is None:
            break

        claimed = db.execute(
            update(InventoryUnit)
            .where(
                InventoryUnit.id == candidate,
                InventoryUnit.status == UnitStatus.AVAILABLE.value,
            )
            .values(
                status=UnitStatus.SOLD.value,
                sold_at=datetime.now(timezone.utc),
                order_id=order_id,
            )
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount == 1:
            recompute_stock(db, product_id)
            unit = db.get(InventoryUnit, candidate, populate_existing=True)
            logger.info("Unit %s (serial %s) sold with order %s", unit.unit_id, unit.serial_number, order_id)
            return unit

        logger.debug("Unit %s was claimed concurrently, retrying", candidate)

    raise OutOfStockError(f"No available unit for product {product_id}")


def update_unit_status(db: Session, unit_pk: int, status, order_id: Optional[int] = None) -> InventoryUnit:
    try:
        new_status = UnitStatus(status)
    except ValueError:
        raise ValidationError(f"Unknown unit status: {status}")

    unit = get_unit(db, unit_pk)
    if unit.status == UnitStatus.SOLD.value and new_status != UnitStatus.SOLD:
        raise ValidationError("A sold unit cannot change status")

    if new_status == UnitStatus.SOLD and unit.status != UnitStatus.SOLD.value:
        # A unit is only ever sold into an existing order
        if order_id is None:
            raise ValidationError("order_id is required to mark a unit as sold")
        if db.get(Order, order_id) is None:
            raise NotFoundError("Order not found")
        unit.sold_at = datetime.now(timezone.utc)
        unit.order_id = order_id
    unit.status = new_status.value

    recompute_stock(db, unit.product_id)
    commit(db)
    db.refresh(unit)
    return unit
