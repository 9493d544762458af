# backend/routes/qr.py
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from database import get_db
from models.qr_code import QrCode
from models.users import User
from schemas.qr_code import CodeFilters, QrCodeOut, QrImageOut, VerificationOut, VerifiedOrder, VerifiedProduct
from services import qr_service
from services.errors import NotFoundError
from services.notifications import NotificationSender, get_notifier
from utils.audit import write_log, client_ip
from utils.tokenJWT import get_current_user

router = APIRouter(tags=["QR Codes"])

def qr_to_out(qr: QrCode) -> QrCodeOut:
    return QrCodeOut(
        code=qr.code,
        order_id=qr.order_id,
        product_id=qr.product_id,
        product_name=qr.product.name if qr.product else None,
        user_id=qr.user_id,
        serial_number=qr.serial_number,
        is_verified=qr.is_verified,
        verified_at=qr.verified_at,
        email_sent=qr.email_sent,
        is_active=qr.is_active,
        created_at=qr.created_at,
        verification_url=qr_service.verification_url(qr.code),
    )


# Customers see their own codes, admins see all
@router.get("/qr-codes", response_model=List[QrCodeOut])
def list_qr_codes(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    filters = CodeFilters() if current_user.is_admin else CodeFilters(user_id=current_user.id)
    return [qr_to_out(qr) for qr in qr_service.list_codes(db, filters)]


# Verification link and scannable image URL for one code
@router.get("/qr-codes/{code}/image", response_model=QrImageOut)
def qr_code_image(
    code: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    qr = qr_service.get_code(db, code)
    if qr.user_id != current_user.id and not current_user.is_admin:
        raise HTTPException(status_code=403, detail="Access denied")
    return QrImageOut(
        code=qr.code,
        verification_url=qr_service.verification_url(qr.code),
        image_url=qr_service.qr_image_url(qr.code),
    )


# Public authenticity check, reachable both from a scanned link (GET) and the app (POST).
# Unknown codes are an expected answer, not an error.
def _handle_verification(code: str, request: Request, db: Session, notifier: NotificationSender):
    meta = {
        "ip_address": client_ip(request),
        "user_agent": request.headers.get("user-agent"),
    }
    try:
        result = qr_service.verify(db, code, verification_data=meta, notifier=notifier)
    except NotFoundError:
        write_log(db, user_id=None, action="QR_VERIFY", resource="qr_codes", status="FAIL",
                  ip=meta["ip_address"], meta={"code": code})
        return JSONResponse(status_code=404, content={"verified": False, "message": "QR code not found"})

    out = VerificationOut(
        verified=result.verified,
        product=VerifiedProduct.model_validate(result.product),
        order=VerifiedOrder.model_validate(result.order),
        serial_number=result.serial_number,
        verified_at=result.verified_at,
        active=result.active,
    )
    write_log(db, user_id=None, action="QR_VERIFY", resource="qr_codes", status="SUCCESS",
              ip=meta["ip_address"], meta={"code": code, "first": result.first_verification})
    return out

@router.get("/verify/{code}", response_model=VerificationOut)
def verify_code(
    code: str,
    request: Request,
    db: Session = Depends(get_db),
    notifier: NotificationSender = Depends(get_notifier),
):
    return _handle_verification(code, request, db, notifier)

@router.post("/qr-verify/{code}", response_model=VerificationOut)
def verify_code_post(
    code: str,
    request: Request,
    db: Session = Depends(get_db),
    notifier: NotificationSender = Depends(get_notifier),
):
    return _handle_verification(code, request, db, notifier)
