# backend/services/notifications.py
import logging
import smtplib
from abc import ABC, abstractmethod
from html import escape
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import List, Optional

from config import settings

logger = logging.getLogger(__name__)


class NotificationSender(ABC):
    """Outgoing customer notifications. Implementations may raise; callers
    go through notify_safely so a failure never breaks a workflow."""

    @abstractmethod
    def send_order_confirmation(self, email: str, order, lines: List[dict]) -> None:
        ...

    @abstractmethod
    def send_verification_confirmation(self, email: str, product, qr_code) -> None:
        ...


class ConsoleNotificationSender(NotificationSender):
    # Used when no SMTP credentials are configured
    def send_order_confirmation(self, email, order, lines):
        logger.info("ORDER CONFIRMATION to %s: order %s, total %.2f",
                    email, order.order_number, order.total_amount)
        for idx, line in enumerate(lines, start=1):
            logger.info("  %d. %s x%s @ %.2f serial=%s verify=%s",
                        idx, line["product_name"], line["quantity"], line["price"],
                        line.get("serial_number") or "-", line.get("verification_url") or "-")

    def send_verification_confirmation(self, email, product, qr_code):
        logger.info("VERIFICATION CONFIRMATION to %s: product %s, code %s",
                    email, product.name, qr_code.code)


class SmtpNotificationSender(NotificationSender):
    """HTML mail over SMTP with STARTTLS."""

    def __init__(
        self,
        smtp_host: str,
        smtp_port: int,
        smtp_user: str,
        smtp_password: str,
        from_email: str = "",
        from_name: str = "Gamer Bazaar",
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.from_email = from_email or smtp_user
        self.from_name = from_name

    def _send(self, to_email: str, subject: str, html_content: str) -> None:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = to_email
        msg.attach(MIMEText(html_content, "html"))

        with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=10) as server:
            server.starttls()
            server.login(self.smtp_user, self.smtp_password)
            server.sendmail(self.from_email, to_email, msg.as_string())
        logger.info("Email '%s' sent to %s", subject, to_email)

    def send_order_confirmation(self, email, order, lines):
        rows = []
        for line in lines:
            serial = ""
            if line.get("serial_number"):
                serial = f"<p><strong>Serial Number:</strong> <code>{escape(line['serial_number'])}</code></p>"
            verify = ""
            if line.get("verification_url"):
                verify = f"<p><a href=\"{escape(line['verification_url'])}\">Verify authenticity</a></p>"
            rows.append(
                f"<div><h4>{escape(line['product_name'])}</h4>"
                f"<p>Quantity: {line['quantity']} &times; ${line['price']:.2f}</p>{serial}{verify}</div>"
            )
        html = (
            f"<h2>Order Confirmation</h2>"
            f"<p><strong>Order:</strong> #{escape(order.order_number)}</p>"
            f"<p><strong>Total:</strong> ${order.total_amount:.2f}</p>"
            + "".join(rows)
        )
        self._send(email, f"Order Confirmation #{order.order_number}", html)

    def send_verification_confirmation(self, email, product, qr_code):
        html = (
            f"<h2>Product Verification Successful!</h2>"
            f"<p>Your product <strong>{escape(product.name)}</strong> has been successfully verified.</p>"
            f"<p><strong>Verification Code:</strong> {escape(qr_code.code)}</p>"
        )
        self._send(email, f"Product Verified - {product.name}", html)


def notify_safely(action: str, fn, *args) -> bool:
    """Call a notifier method, logging and swallowing any failure."""
    try:
        fn(*args)
        return True
    except Exception:
        logger.exception("Notification %s failed", action)
        return False


_notifier: Optional[NotificationSender] = None


def get_notifier() -> NotificationSender:
    # FastAPI dependency; tests override it with a recording fake
    global _notifier
    if _notifier is None:
        if settings.SMTP_USER and settings.SMTP_PASSWORD:
            _notifier = SmtpNotificationSender(
                settings.SMTP_HOST, settings.SMTP_PORT, settings.SMTP_USER,
                settings.SMTP_PASSWORD, settings.EMAIL_FROM, settings.EMAIL_FROM_NAME,
            )
        else:
            _notifier = ConsoleNotificationSender()
    return _notifier
