# backend/routes/stats.py

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from pydantic import BaseModel

from database import get_db
from models.users import User
from services import analytics_service
from utils.tokenJWT import role_required

router = APIRouter(
    prefix="/stats",
    tags=["Stats"]
)

# === Pydantic Response Schemas ===

class StatsSummary(BaseModel):
    today_sales: float
    monthly_sales: float
    total_orders: int
    total_products: int


# === Dashboard Summary ===

@router.get("/summary", response_model=StatsSummary)
def get_stats_summary(
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required("admin"))
):
    return StatsSummary(**analytics_service.sales_summary(db))
