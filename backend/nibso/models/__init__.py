from .storage import KeyValueEntry
from .journal import SaleEvent
from .records import (
    InventoryItem,
    CartLine,
    Promotion,
    LoyaltyMember,
    DailySaleRecord,
    Shipment,
    PROMOTION_TYPES,
    PROMOTION_TARGETS,
    SHIPMENT_STATUSES,
)

__all__ = [
    'KeyValueEntry', 'SaleEvent',
    'InventoryItem', 'CartLine', 'Promotion', 'LoyaltyMember', 'DailySaleRecord', 'Shipment',
    'PROMOTION_TYPES', 'PROMOTION_TARGETS', 'SHIPMENT_STATUSES',
]
