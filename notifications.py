"""
Admin email notifications for new orders and contact messages.

Delivery is best effort: the record is already stored by the time a
notification goes out, so dispatch_* log failures instead of raising.
"""
import logging
import smtplib
from abc import ABC, abstractmethod
from email.mime.text import MIMEText
from typing import Any, Dict, Optional, Tuple

from config import Settings

logger = logging.getLogger(__name__)


def _money(value: float) -> str:
    text = f"{value:.2f}"
    return text[:-3] if text.endswith(".00") else text


def format_order_email(order: Dict[str, Any], base_url: str = "") -> Tuple[str, str]:
    subject = f"New order {order.get('order_number', '')} from {order.get('name', '')}"
    lines = [
        f"Name: {order.get('name')}",
        f"Contact: {order.get('contact')}",
    ]
    if order.get("email"):
        lines.append(f"Email: {order['email']}")
    address = order.get("address") or ""
    if order.get("city"):
        address = f"{address}, {order['city']}"
    lines.append(f"Address: {address}")
    payment = order.get("payment_method")
    if order.get("payment_reference"):
        payment = f"{payment} (ref {order['payment_reference']})"
    lines.append(f"Payment: {payment}")
    lines.append("")
    lines.append("Items:")
    for item in order.get("items", []):
        size = f" [{item['size']}]" if item.get("size") else ""
        lines.append(f"  - {item['product']}{size} x{item['quantity']} @ {_money(item['price'])}")
    lines.append(f"Total: {_money(order.get('total', 0))}")
    if order.get("screenshot"):
        lines.append("")
        lines.append(f"Screenshot: {base_url.rstrip('/')}/uploads/{order['screenshot']}")
    return subject, "\n".join(lines)


def format_contact_email(message: Dict[str, Any]) -> Tuple[str, str]:
    subject = f"New contact message from {message.get('name', '')}"
    lines = [
        f"Name: {message.get('name')}",
        f"Phone: {message.get('phone')}",
    ]
    if message.get("email"):
        lines.append(f"Email: {message['email']}")
    lines.append("")
    lines.append(message.get("message") or "")
    return subject, "\n".join(lines)


class Notifier(ABC):
    """Base notifier: subclasses implement send()."""

    def __init__(self, base_url: str = ""):
        self.base_url = base_url

    @abstractmethod
    def send(self, subject: str, body: str) -> None:
        raise NotImplementedError

    def dispatch_order(self, order: Dict[str, Any]) -> bool:
        subject, body = format_order_email(order, self.base_url)
        try:
            self.send(subject, body)
        except Exception:
            logger.exception("Order notification failed for %s", order.get("order_number"))
            return False
        logger.info("Order notification sent for %s", order.get("order_number"))
        return True

    def dispatch_contact(self, message: Dict[str, Any]) -> bool:
        subject, body = format_contact_email(message)
        try:
            self.send(subject, body)
        except Exception:
            logger.exception("Contact notification failed for %s", message.get("name"))
            return False
        return True


class NullNotifier(Notifier):
    def send(self, subject: str, body: str) -> None:
        logger.debug("Notifications disabled, dropping %r", subject)


class EmailNotifier(Notifier):
    def __init__(self, host: str, to_address: str, port: int = 587, user: Optional[str] = None,
                 password: Optional[str] = None, sender: Optional[str] = None, timeout: float = 10.0,
                 base_url: str = ""):
        super().__init__(base_url)
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.sender = sender or user or "noreply@localhost"
        self.to_address = to_address
        self.timeout = timeout

    def send(self, subject: str, body: str) -> None:
        m = MIMEText(body)
        m["Subject"] = subject
        m["From"] = self.sender
        m["To"] = self.to_address
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as s:
            if self.user and self.password:
                s.starttls()
                s.login(self.user, self.password)
            s.send_message(m)


def build_notifier(settings: Settings) -> Notifier:
    if not settings.mail_configured:
        return NullNotifier(settings.public_base_url)
    return EmailNotifier(
        host=settings.smtp_host,
        to_address=settings.admin_email,
        port=settings.smtp_port,
        user=settings.smtp_user,
        password=settings.smtp_password,
        sender=settings.smtp_sender,
        timeout=settings.smtp_timeout,
        base_url=settings.public_base_url,
    )
