import smtplib

import pytest

import notifications
from config import Settings
from notifications import (
    EmailNotifier,
    NullNotifier,
    build_notifier,
    format_contact_email,
    format_order_email,
)

ORDER = {
    "order_number": "ORD-1A2B3C",
    "name": "Ayesha Khan",
    "contact": "03001234567",
    "email": "ayesha@example.com",
    "address": "House 12",
    "city": "Lahore",
    "payment_method": "bank",
    "payment_reference": "FT-77",
    "screenshot": "1700000000000-abcd1234-proof.png",
    "items": [
        {"product": "Widget", "size": "M", "quantity": 2, "price": 500.0},
        {"product": "Gadget", "size": None, "quantity": 1, "price": 1200.0},
    ],
    "total": 2200.0,
}


class FakeSMTP:
    instances = []

    def __init__(self, host, port, timeout=None):
        self.host, self.port, self.timeout = host, port, timeout
        self.calls = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        self.calls.append("starttls")

    def login(self, user, password):
        self.calls.append(("login", user, password))

    def send_message(self, message):
        self.calls.append(("send", message))


def test_format_order_email():
    subject, body = format_order_email(ORDER, "http://shop.test/")
    assert subject == "New order ORD-1A2B3C from Ayesha Khan"
    assert "Address: House 12, Lahore" in body
    assert "Payment: bank (ref FT-77)" in body
    assert "  - Widget [M] x2 @ 500" in body
    assert "  - Gadget x1 @ 1200" in body
    assert "Total: 2200" in body
    assert "Screenshot: http://shop.test/uploads/1700000000000-abcd1234-proof.png" in body


def test_format_order_email_without_screenshot():
    order = dict(ORDER, screenshot=None, payment_reference=None)
    _, body = format_order_email(order)
    assert "Screenshot" not in body
    assert "Payment: bank\n" in body


def test_format_contact_email():
    subject, body = format_contact_email({"name": "Omar", "phone": "0321", "message": "Do you ship to Quetta?"})
    assert subject == "New contact message from Omar"
    assert body.endswith("Do you ship to Quetta?")


def test_email_notifier_sends_via_smtp(monkeypatch):
    FakeSMTP.instances = []
    monkeypatch.setattr(notifications.smtplib, "SMTP", FakeSMTP)
    notifier = EmailNotifier("smtp.test", "admin@shop.test", port=2525, user="bot", password="pw", timeout=3)

    assert notifier.dispatch_order(ORDER) is True
    smtp = FakeSMTP.instances[0]
    assert (smtp.host, smtp.port, smtp.timeout) == ("smtp.test", 2525, 3)
    assert smtp.calls[:2] == ["starttls", ("login", "bot", "pw")]
    message = smtp.calls[2][1]
    assert message["To"] == "admin@shop.test"
    assert message["From"] == "bot"
    assert message["Subject"].startswith("New order ORD-1A2B3C")


def test_dispatch_swallows_transport_failure(monkeypatch):
    class BrokenSMTP(FakeSMTP):
        def send_message(self, message):
            raise smtplib.SMTPServerDisconnected("gone")

    monkeypatch.setattr(notifications.smtplib, "SMTP", BrokenSMTP)
    notifier = EmailNotifier("smtp.test", "admin@shop.test")
    assert notifier.dispatch_order(ORDER) is False
    assert notifier.dispatch_contact({"name": "Omar", "phone": "0321", "message": "hi"}) is False


def test_build_notifier():
    assert isinstance(build_notifier(Settings()), NullNotifier)
    assert isinstance(build_notifier(Settings(admin_email="a@b.c", smtp_host="smtp.test", notifications_enabled=False)),
                      NullNotifier)

    notifier = build_notifier(Settings(admin_email="a@b.c", smtp_host="smtp.test", smtp_sender="shop@b.c"))
    assert isinstance(notifier, EmailNotifier)
    assert notifier.to_address == "a@b.c"
    assert notifier.sender == "shop@b.c"


def test_null_notifier_accepts_everything():
    assert NullNotifier().dispatch_order(ORDER) is True


def test_notifier_subclass_must_implement_send():
    class Silent(notifications.Notifier):
        pass

    with pytest.raises(TypeError):
        Silent()
