from models.inventory import InventoryUnit, UnitStatus
from services.notifications import NotificationSender
from utils.tokenJWT import create_access_token


class RecordingNotifier(NotificationSender):
    """Collects notifications instead of sending them; can be told to fail."""

    def __init__(self):
        self.orders = []
        self.verifications = []
        self.fail = False

    def send_order_confirmation(self, email, order, lines):
        if self.fail:
            raise RuntimeError("SMTP down")
        self.orders.append((email, order.order_number, lines))

    def send_verification_confirmation(self, email, product, qr_code):
        if self.fail:
            raise RuntimeError("SMTP down")
        self.verifications.append((email, product.id, qr_code.code))


def auth_headers(user) -> dict:
    """Authorization header for a stored user."""
    token = create_access_token(data={"sub": user.email, "role": user.role})
    return {"Authorization": f"Bearer {token}"}


def available_count(db, product_id) -> int:
    return (
        db.query(InventoryUnit)
        .filter(InventoryUnit.product_id == product_id, InventoryUnit.status == UnitStatus.AVAILABLE.value)
        .count()
    )
