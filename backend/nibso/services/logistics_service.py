from __future__ import annotations

import random

from ..models import Shipment, SHIPMENT_STATUSES
from ..time_utils import epoch_ms

SHIPMENTS_KEY = "nibsoLogisticsShipments"


class ShipmentError(Exception):
    """Raised for shipment operation errors."""


def generate_tracking_number() -> str:
    return f"NB-{random.randint(10000, 99999)}"


class ShipmentRegistry:
    """Delivery shipments; POS sales with delivery create one each."""

    def __init__(self, store, *, key: str = SHIPMENTS_KEY):
        self._store = store
        self._key = key
        self._shipments = [Shipment.from_dict(row) for row in store.load(key, [])]

    def _persist(self) -> None:
        self._store.save(self._key, [s.to_dict() for s in self._shipments])

    def shipments(self) -> list[Shipment]:
        return list(self._shipments)

    def get(self, shipment_id: str) -> Shipment | None:
        for shipment in self._shipments:
            if shipment.id == shipment_id:
                return shipment
        return None

    def create_shipment(
        self,
        *,
        customer_name: str,
        destination: str,
        estimated_delivery: str,
        source_transaction_id: str | None = None,
    ) -> Shipment:
        shipment = Shipment(
            id=f"ship_{epoch_ms()}",
            tracking_number=generate_tracking_number(),
            customer_name=customer_name,
            destination=destination,
            estimated_delivery=estimated_delivery,
            status="Pending",
            source_transaction_id=source_transaction_id,
        )
        self._shipments.insert(0, shipment)
        self._persist()
        return shipment

    def update_status(self, shipment_id: str, status: str, driver_id: str | None = None) -> Shipment:
        if status not in SHIPMENT_STATUSES:
            raise ShipmentError(f"status must be one of: {', '.join(SHIPMENT_STATUSES)}")

        shipment = self.get(shipment_id)
        if shipment is None:
            raise ShipmentError("Shipment not found")

        shipment.status = status
        if driver_id is not None:
            shipment.driver_id = driver_id
        self._persist()
        return shipment
