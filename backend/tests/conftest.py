"""
Pytest fixtures for Nibso backend tests.

Provides an in-memory application with seeded ledgers, a recording text
client in place of the Gemini API, and a cart engine wired to an
in-process store with a fixed clock.
"""

from datetime import datetime
from types import SimpleNamespace

import pytest

from nibso import create_app
from nibso.config import BusinessProfile, BusinessType
from nibso.extensions import db
from nibso.services.container import build_services
from nibso.services.inventory_service import InventoryLedger
from nibso.services.logistics_service import ShipmentRegistry
from nibso.services.loyalty_service import LoyaltyRegistry
from nibso.services.pos_service import CartEngine
from nibso.services.promotions_service import PromotionCatalog
from nibso.services.receipt_service import ReceiptTextService
from nibso.services.sales_service import SalesLedger
from nibso.services.storage_service import MemoryKeyValueStore
from nibso.services.text_service import Err, Ok


# Both demo promotions (Milk 10%, Beverages 15%) are active on this date.
FIXED_NOW = datetime(2024, 8, 20, 12, 0, 0)


class FakeTextClient:
    """Records prompts; answers with a canned Ok, an Err, or an exception."""

    def __init__(self, reply="RECEIPT TEXT", error=None, raises=False, on_generate=None):
        self.reply = reply
        self.error = error
        self.raises = raises
        self.on_generate = on_generate
        self.calls = []

    def generate(self, prompt, *, temperature=0.5, offline_message=None):
        self.calls.append({"prompt": prompt, "temperature": temperature})
        if self.on_generate is not None:
            self.on_generate()
        if self.raises:
            raise RuntimeError("text service exploded")
        if self.error:
            return Err(self.error)
        return Ok(self.reply)


def make_profile(business_type=BusinessType.SUPERMARKET, tax_rate=7.5):
    return BusinessProfile(
        name="Test Mart",
        address="1 Test Road, Lagos",
        currency="₦",
        tax_rate=tax_rate,
        business_type=business_type,
    )


@pytest.fixture(scope='function')
def text_client():
    return FakeTextClient()


@pytest.fixture(scope='function')
def app(text_client):
    """Create application for testing, with seeded ledgers."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BUSINESS_TYPE': BusinessType.SUPERMARKET.value,
        'GEMINI_API_KEY': '',
        'SEED_DEMO_DATA': True,
    })

    with app.app_context():
        db.create_all()
        build_services(app, text_client=text_client)
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def services(app):
    return app.extensions["nibso"]


@pytest.fixture(scope='function')
def store():
    return MemoryKeyValueStore()


@pytest.fixture(scope='function')
def ledgers(store):
    """Seeded ledgers sharing one in-process store."""
    return SimpleNamespace(
        inventory=InventoryLedger(store),
        promotions=PromotionCatalog(store),
        loyalty=LoyaltyRegistry(store),
        sales=SalesLedger(store),
        shipments=ShipmentRegistry(store),
    )


@pytest.fixture(scope='function')
def make_engine(ledgers, text_client):
    """Factory for a cart engine over the in-process ledgers (no journal)."""
    def _make(profile=None, client=None, **kwargs):
        profile = profile or make_profile()
        return CartEngine(
            inventory=ledgers.inventory,
            promotions=ledgers.promotions,
            loyalty=ledgers.loyalty,
            sales=ledgers.sales,
            profile=profile,
            receipts=ReceiptTextService(client or text_client, profile),
            shipments=ledgers.shipments,
            clock=lambda: FIXED_NOW,
            **kwargs,
        )
    return _make
