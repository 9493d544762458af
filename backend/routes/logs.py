# backend/routes/logs.py
from datetime import date, datetime, time, timedelta
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from database import get_db
from models.log import Log
from models.users import User
from utils.tokenJWT import role_required

router = APIRouter(prefix="/logs", tags=["Logs"])


class LogResponse(BaseModel):
    id: int
    user_id: Optional[int] = None
    action: str
    resource: str
    status: str
    ip: Optional[str] = None
    ts: datetime
    meta: Optional[Any] = None

    model_config = ConfigDict(from_attributes=True)


class LogPage(BaseModel):
    items: List[LogResponse]
    total: int
    page: int
    page_size: int


# Audit trail browser (admin only), newest first
@router.get("", response_model=LogPage)
def get_logs(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    action: Optional[str] = Query(None, description="Action contains"),
    user_id: Optional[int] = Query(None),
    resource: Optional[str] = Query(None, description="Resource contains"),
    status: Optional[str] = Query(None, description="SUCCESS or FAIL"),
    date_from: Optional[date] = Query(None, description="First day, YYYY-MM-DD"),
    date_to: Optional[date] = Query(None, description="Last day (inclusive), YYYY-MM-DD"),
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required("admin")),
):
    query = db.query(Log)

    if action:
        query = query.filter(Log.action.ilike(f"%{action}%"))
    if user_id is not None:
        query = query.filter(Log.user_id == user_id)
    if resource:
        query = query.filter(Log.resource.ilike(f"%{resource}%"))
    if status:
        query = query.filter(Log.status == status.upper())
    if date_from:
        query = query.filter(Log.ts >= datetime.combine(date_from, time.min))
    if date_to:
        query = query.filter(Log.ts < datetime.combine(date_to + timedelta(days=1), time.min))

    total = query.count()
    logs = (
        query.order_by(Log.ts.desc(), Log.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return {"items": logs, "total": total, "page": page, "page_size": page_size}
