import os

# Keep test runs from writing the service log file.
os.environ.setdefault("LOG_FILE", "")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from preorder_service.db import create_session_factory, dispose, init_db
from preorder_service.db_models import Bundle, Store
from preorder_service.pricing import per_store_fee

SERVICE_FEE = 25000


class FakeNotifier:
    """Records store notices instead of publishing them to RabbitMQ."""

    def __init__(self):
        self.published = []
        self.closed = False

    def publish_store_order(self, order_number, store, items, message, whatsapp_url=None):
        self.published.append({
            "order_number": order_number,
            "store": store,
            "items": items,
            "message": message,
            "whatsapp_url": whatsapp_url,
        })

    def close(self):
        self.closed = True


@pytest.fixture
def session_factory():
    factory = create_session_factory("sqlite://", poolclass=StaticPool)
    init_db(factory)
    yield factory
    dispose(factory)


@pytest.fixture
def catalogue(session_factory):
    """Two stores: s1 reachable on WhatsApp, s2 without a number."""
    with session_factory() as session:
        session.add_all([
            Store(id="s1", name="Toko Kue Sari", whatsapp_number="0812-3456-7890", contact_person="Sari"),
            Store(id="s2", name="Dapur Nusantara"),
            Bundle(id="b1", store_id="s1", name="Paket Kue Lebaran", price=75000, cost_price=60000),
            Bundle(id="b2", store_id="s2", name="Paket Rendang", price=55000, cost_price=45000),
            Bundle(id="b3", store_id="s1", name="Paket Nastar", price=30000, cost_price=25000),
            Bundle(id="b-old", store_id="s2", name="Paket Lama", price=10000, is_active=False),
        ])
        session.commit()
    return session_factory


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def client(catalogue, notifier):
    from preorder_service.main import app

    app.state.session_factory = catalogue
    app.state.fee_schedule = per_store_fee(SERVICE_FEE)
    app.state.notifier_factory = lambda: notifier
    return TestClient(app)


def checkout_payload(items=None, **overrides):
    payload = {
        "customerName": "Budi Santoso",
        "customerEmail": "budi@example.com",
        "customerPhone": "081298765432",
        "paymentMethod": "BANK_TRANSFER",
        "pickupDate": "2025-10-03",
        "notes": "Ambil sore",
        "items": items if items is not None else [
            {"bundleId": "b1", "quantity": 2, "price": 75000},
            {"bundleId": "b2", "quantity": 1, "price": 55000},
        ],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def make_payload():
    return checkout_payload
