# backend/services/analytics_service.py
from datetime import datetime, timedelta, timezone

from sqlalchemy import func
from sqlalchemy.orm import Session

from models.order import Order, OrderStatus
from models.product import Product


def sales_summary(db: Session, now: datetime = None) -> dict:
    """Dashboard numbers: today's and this month's sales, order and product counts."""
    # Day and month boundaries are UTC, like the stored timestamps
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    now = now.astimezone(timezone.utc)
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    month_start = today.replace(day=1)
    tomorrow = today + timedelta(days=1)

    # Cancelled orders do not count as sales
    sales = db.query(func.coalesce(func.sum(Order.total_amount), 0.0)).filter(
        Order.status != OrderStatus.CANCELLED.value
    )

    today_sales = sales.filter(Order.created_at >= today, Order.created_at < tomorrow).scalar()
    monthly_sales = sales.filter(Order.created_at >= month_start, Order.created_at < tomorrow).scalar()
    total_orders = db.query(func.count(Order.id)).scalar()
    total_products = db.query(func.count(Product.id)).filter(Product.is_active.is_(True)).scalar()

    return {
        "today_sales": round(float(today_sales or 0), 2),
        "monthly_sales": round(float(monthly_sales or 0), 2),
        "total_orders": int(total_orders or 0),
        "total_products": int(total_products or 0),
    }
