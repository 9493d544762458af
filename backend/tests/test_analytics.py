from datetime import datetime, timedelta, timezone

from models.order import Order
from services import analytics_service


def _order(db, user, number, amount, status="processing", created_at=None):
    order = Order(user_id=user.id, order_number=number, status=status, total_amount=amount,
                  created_at=created_at)
    db.add(order)
    db.commit()
    return order


def test_sales_summary(db, customer, make_product):
    now = datetime(2026, 3, 15, 12, 0, 0)
    make_product()
    make_product(is_active=False)
    _order(db, customer, "A", 100.0, created_at=now - timedelta(hours=1))
    _order(db, customer, "B", 40.0, created_at=now - timedelta(days=5))
    _order(db, customer, "C", 70.0, status="cancelled", created_at=now - timedelta(hours=2))
    _order(db, customer, "D", 500.0, created_at=now - timedelta(days=40))

    summary = analytics_service.sales_summary(db, now=now)

    assert summary == {
        "today_sales": 100.0,
        "monthly_sales": 140.0,
        "total_orders": 4,
        "total_products": 1,
    }


def test_sales_summary_empty(db):
    assert analytics_service.sales_summary(db) == {
        "today_sales": 0.0, "monthly_sales": 0.0, "total_orders": 0, "total_products": 0,
    }


def test_sales_summary_uses_utc_day_boundaries(db, customer):
    # 01:00 on the 16th at UTC+2 is still the 15th in UTC
    now = datetime(2026, 3, 16, 1, 0, 0, tzinfo=timezone(timedelta(hours=2)))
    _order(db, customer, "A", 30.0, created_at=datetime(2026, 3, 15, 12, 0, 0))
    _order(db, customer, "B", 20.0, created_at=datetime(2026, 3, 16, 0, 30, 0))

    summary = analytics_service.sales_summary(db, now=now)

    assert summary["today_sales"] == 30.0
    assert summary["monthly_sales"] == 30.0
