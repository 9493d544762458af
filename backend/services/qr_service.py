# backend/services/qr_service.py
"""
Authentication codes.

A code is minted per order line at checkout and bound for good to that
order, product and the serial of the unit shipped with it. Its state only
moves forward:

    issued (verified=False, active=True)
      -> verified (verified=True)          first successful lookup
      -> retired (active=False)            owning order delivered

Retired codes still verify, they just report active=False.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional
from urllib.parse import urlencode

from sqlalchemy import update
from sqlalchemy.orm import Session, joinedload

from config import settings
from models.order import Order
from models.product import Product
from models.qr_code import QrCode
from schemas.qr_code import CodeFilters
from services.concurrency import commit
from services.errors import NotFoundError
from services.notifications import NotificationSender, notify_safely

logger = logging.getLogger(__name__)


@dataclass
class VerificationResult:
    verified: bool
    product: Product
    order: Order
    serial_number: str
    verified_at: Optional[datetime]
    active: bool
    first_verification: bool


def verification_url(code: str) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}/verify/{code}"


def qr_image_url(code: str, size: int = 200) -> str:
    # Rendering is delegated to an external QR image service
    query = urlencode({"size": f"{size}x{size}", "data": verification_url(code)})
    return f"{settings.QR_IMAGE_API_URL}?{query}"


def issue(db: Session, order_id: int, product_id: int, user_id: int, serial_number: str) -> QrCode:
    """
    Mint a code for one order line. Runs inside the caller's transaction.

    The ids are taken as given; checkout is the only caller and always
    passes a consistent order line.
    """
    qr = QrCode(
        code=str(uuid.uuid4()),
        order_id=order_id,
        product_id=product_id,
        user_id=user_id,
        serial_number=serial_number or "",
        is_verified=False,
        email_sent=False,
        is_active=True,
    )
    db.add(qr)
    db.flush()
    return qr


def get_code(db: Session, code: str) -> QrCode:
    qr = (
        db.query(QrCode)
        .options(joinedload(QrCode.product), joinedload(QrCode.order), joinedload(QrCode.user))
        .filter(QrCode.code == code)
        .first()
    )
    if not qr:
        raise NotFoundError("QR code not found")
    return qr


def verify(
    db: Session,
    code: str,
    verification_data: Optional[dict] = None,
    notifier: Optional[NotificationSender] = None,
) -> VerificationResult:
    qr = get_code(db, code)

    # Only the first lookup flips the flag; verified_at never moves afterwards
    first = db.execute(
        update(QrCode)
        .where(QrCode.id == qr.id, QrCode.is_verified.is_(False))
        .values(
            is_verified=True,
            verified_at=datetime.now(timezone.utc),
            verification_data=verification_data or {},
        )
        .execution_options(synchronize_session=False)
    ).rowcount == 1
    commit(db)
    db.refresh(qr)

    if first:
        logger.info("QR code %s verified (order %s, serial %s)", qr.code, qr.order_id, qr.serial_number or "-")
        if notifier is not None and qr.user is not None and qr.user.email:
            _send_verification_email(db, qr, notifier)

    return VerificationResult(
        verified=True,
        product=qr.product,
        order=qr.order,
        serial_number=qr.serial_number,
        verified_at=qr.verified_at,
        active=qr.is_active,
        first_verification=first,
    )


def _send_verification_email(db: Session, qr: QrCode, notifier: NotificationSender) -> None:
    # Claim the email before sending so it goes out at most once
    claimed = db.execute(
        update(QrCode)
        .where(QrCode.id == qr.id, QrCode.email_sent.is_(False))
        .values(email_sent=True)
        .execution_options(synchronize_session=False)
    ).rowcount == 1
    commit(db)
    db.refresh(qr)
    if claimed:
        notify_safely("verification_confirmation", notifier.send_verification_confirmation,
                      qr.user.email, qr.product, qr)


def deactivate(db: Session, code: str) -> QrCode:
    qr = db.query(QrCode).filter(QrCode.code == code).first()
    if not qr:
        raise NotFoundError("QR code not found")
    qr.is_active = False
    commit(db)
    db.refresh(qr)
    return qr


def list_codes(db: Session, filters: CodeFilters) -> List[QrCode]:
    query = db.query(QrCode).options(joinedload(QrCode.product), joinedload(QrCode.order))
    if filters.order_id is not None:
        query = query.filter(QrCode.order_id == filters.order_id)
    if filters.user_id is not None:
        query = query.filter(QrCode.user_id == filters.user_id)
    return query.order_by(QrCode.created_at.desc(), QrCode.id.desc()).all()
