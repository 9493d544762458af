# backend/routes/inventory.py
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from database import get_db
from models.inventory import InventoryUnit, UnitStatus
from models.users import User
from schemas.inventory import UnitCreate, UnitFilters, UnitOut, UnitStatusPatch
from services import inventory_service
from utils.audit import write_log, client_ip
from utils.tokenJWT import role_required

router = APIRouter(prefix="/inventory", tags=["Inventory"])

admin_only = role_required("admin")

# Map a unit to its response, flattening the product name
def _unit_to_out(unit: InventoryUnit) -> UnitOut:
    return UnitOut(
        id=unit.id,
        unit_id=unit.unit_id,
        product_id=unit.product_id,
        product_name=unit.product.name if unit.product else "",
        serial_number=unit.serial_number,
        security_code_image_url=unit.security_code_image_url,
        certificate_url=unit.certificate_url,
        status=unit.status,
        sold_at=unit.sold_at,
        order_id=unit.order_id,
        created_by=unit.created_by,
        created_at=unit.created_at,
    )


@router.post("/units", response_model=UnitOut)
def create_unit(
    payload: UnitCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_only),
):
    unit = inventory_service.create_unit(
        db,
        product_id=payload.product_id,
        serial_number=payload.serial_number,
        created_by=current_user.id,
        security_code_image_url=payload.security_code_image_url,
        certificate_url=payload.certificate_url,
    )
    write_log(db, user_id=current_user.id, action="UNIT_CREATE", resource="inventory", status="SUCCESS",
              ip=client_ip(request), meta={"unit_id": unit.unit_id, "product_id": payload.product_id})
    return _unit_to_out(inventory_service.get_unit(db, unit.id))


@router.get("/units", response_model=List[UnitOut])
def list_units(
    product_id: Optional[int] = Query(None),
    status: Optional[UnitStatus] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_only),
):
    units = inventory_service.list_units(db, UnitFilters(product_id=product_id, status=status))
    return [_unit_to_out(u) for u in units]


@router.get("/units/{unit_pk}", response_model=UnitOut)
def get_unit(
    unit_pk: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_only),
):
    return _unit_to_out(inventory_service.get_unit(db, unit_pk))


@router.patch("/units/{unit_pk}/status", response_model=UnitOut)
def update_unit_status(
    unit_pk: int,
    payload: UnitStatusPatch,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_only),
):
    unit = inventory_service.update_unit_status(db, unit_pk, payload.status, payload.order_id)
    write_log(db, user_id=current_user.id, action="UNIT_STATUS_CHANGE", resource="inventory", status="SUCCESS",
              ip=client_ip(request), meta={"unit_id": unit.unit_id, "status": payload.status.value})
    return _unit_to_out(inventory_service.get_unit(db, unit_pk))
