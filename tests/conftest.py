import json
import smtplib

import pytest
from fastapi.testclient import TestClient

from config import Settings
from database import MemoryStore
from main import create_app
from notifications import Notifier


class RecordingNotifier(Notifier):
    def __init__(self, fail: bool = False):
        super().__init__("http://shop.test")
        self.fail = fail
        self.sent = []

    def send(self, subject, body):
        if self.fail:
            raise smtplib.SMTPException("mail server down")
        self.sent.append((subject, body))


@pytest.fixture
def settings(tmp_path):
    return Settings(
        upload_dir=str(tmp_path / "uploads"),
        static_dir=str(tmp_path / "static"),
        public_base_url="http://shop.test",
    )


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def client(settings, store, notifier):
    app = create_app(settings=settings, store=store, notifier=notifier)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def checkout_form():
    def build(cart, **overrides):
        form = {
            "name": "Ayesha Khan",
            "contact": "03001234567",
            "address": "House 12, Street 4",
            "city": "Lahore",
            "paymentMethod": "cash",
            "cart": cart if isinstance(cart, str) else json.dumps(cart),
        }
        form.update(overrides)
        return form
    return build
