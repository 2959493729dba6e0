# Overview: Builds the ledgers and the cart engine once per application and hands them out.

from __future__ import annotations

from dataclasses import dataclass

from flask import Flask, current_app

from ..config import BusinessProfile
from .inventory_service import InventoryLedger
from .ledger_service import SaleJournal
from .logistics_service import ShipmentRegistry
from .loyalty_service import LoyaltyRegistry
from .pos_service import CartEngine
from .promotions_service import PromotionCatalog
from .receipt_service import ReceiptTextService
from .sales_service import SalesLedger
from .storage_service import KeyValueStore
from .text_service import GeminiTextClient, tcp_probe

EXTENSION_KEY = "nibso"


@dataclass
class Services:
    profile: BusinessProfile
    store: object
    inventory: InventoryLedger
    promotions: PromotionCatalog
    loyalty: LoyaltyRegistry
    sales: SalesLedger
    shipments: ShipmentRegistry
    journal: SaleJournal
    receipts: ReceiptTextService
    cart: CartEngine


def build_text_client(config) -> GeminiTextClient:
    return GeminiTextClient(
        api_key=config["GEMINI_API_KEY"],
        model=config["GEMINI_MODEL"],
        is_online=tcp_probe(
            config["CONNECTIVITY_PROBE_HOST"],
            config["CONNECTIVITY_PROBE_PORT"],
            config["CONNECTIVITY_PROBE_TIMEOUT"],
        ),
    )


def build_services(app: Flask, *, store=None, text_client=None) -> Services:
    """
    Construct every ledger (each reads its key once here) and inject them
    into a single cart engine. Must run inside an app context when the
    default SQL-backed store is used.
    """
    config = app.config
    profile = BusinessProfile.from_config(config)
    store = store if store is not None else KeyValueStore()
    seed = bool(config.get("SEED_DEMO_DATA", True))

    inventory = InventoryLedger(store, seed=seed)
    promotions = PromotionCatalog(store, seed=seed)
    loyalty = LoyaltyRegistry(store, seed=seed)
    sales = SalesLedger(store)
    shipments = ShipmentRegistry(store)
    journal = SaleJournal()
    receipts = ReceiptTextService(text_client or build_text_client(config), profile)

    cart = CartEngine(
        inventory=inventory,
        promotions=promotions,
        loyalty=loyalty,
        sales=sales,
        profile=profile,
        receipts=receipts,
        shipments=shipments,
        journal=journal,
        stock_policy=config.get("NEGATIVE_STOCK_POLICY", "allow"),
        delivery_lead_days=int(config.get("DELIVERY_LEAD_DAYS", 5)),
        loyalty_point_unit=int(config.get("LOYALTY_POINT_UNIT", 100)),
    )

    services = Services(
        profile=profile,
        store=store,
        inventory=inventory,
        promotions=promotions,
        loyalty=loyalty,
        sales=sales,
        shipments=shipments,
        journal=journal,
        receipts=receipts,
        cart=cart,
    )
    app.extensions[EXTENSION_KEY] = services
    return services


def get_services() -> Services:
    """Services for the current app, built on first use."""
    app = current_app._get_current_object()
    services = app.extensions.get(EXTENSION_KEY)
    if services is None:
        services = build_services(app)
    return services
