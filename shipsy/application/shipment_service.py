from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from shipsy.core.logging_config import get_logger
from shipsy.domain.errors import ValidationFailed
from shipsy.domain.models import Shipment, as_utc, utcnow
from shipsy.infrastructure import customer_repository, shipment_repository
from shipsy.infrastructure.repository import Page
from shipsy.infrastructure.shipment_repository import ShipmentFilters
from .ownership import assert_all_owned, assert_owned
from .schemas import ShipmentCreate, ShipmentUpdate

logger = get_logger(__name__)

RECENT_SHIPMENTS = 5
NOT_NULLABLE = ("type", "mode", "start_location", "end_location", "cost", "calculated_total")
TOTAL_BELOW_COST = "Calculated total must be greater than or equal to cost"


class ShipmentService:
    """Shipment use cases for one tenant.

    Delivery state only moves through ``_set_delivered``, which keeps
    ``delivery_date`` populated whenever ``is_delivered`` is true.
    """

    def __init__(self, db: Session, user_id: str):
        self.db = db
        self.user_id = user_id

    def list(self, filters: ShipmentFilters, page: int, limit: int,
             sort_by: Optional[str] = None, sort_order: str = "desc") -> Page:
        return shipment_repository.list_for_user(
            self.db, self.user_id, filters, page, limit, sort_by=sort_by, sort_order=sort_order
        )

    def pending(self) -> List[Shipment]:
        return shipment_repository.list_by_delivery_state(self.db, self.user_id, delivered=False)

    def delivered(self) -> List[Shipment]:
        return shipment_repository.list_by_delivery_state(self.db, self.user_id, delivered=True)

    def stats(self) -> dict:
        totals = shipment_repository.totals_for_user(self.db, self.user_id)
        return {
            "total_shipments": totals["total"],
            "pending_shipments": totals["pending"],
            "delivered_shipments": totals["delivered"],
            "total_revenue": totals["revenue"],
            "average_cost": totals["average_cost"],
            "by_type": shipment_repository.counts_by(self.db, self.user_id, Shipment.type),
            "by_mode": shipment_repository.counts_by(self.db, self.user_id, Shipment.mode),
            "recent_shipments": shipment_repository.recent_for_user(self.db, self.user_id, RECENT_SHIPMENTS),
        }

    def create(self, data: ShipmentCreate) -> Shipment:
        customer_id = str(data.customer_id)
        customer = customer_repository.get_customer(self.db, customer_id)
        assert_owned(customer, self.user_id, customer_repository.CUSTOMERS.label)

        values = data.model_dump(exclude={"customer_id"})
        shipment = shipment_repository.create_shipment(
            self.db, self.user_id, customer_id=customer_id, is_delivered=False, **values
        )
        self.db.commit()
        logger.info("Shipment created", extra={"extra_fields": {"shipment_id": shipment.id}})
        return shipment

    def update(self, shipment: Shipment, data: ShipmentUpdate) -> Shipment:
        changes = data.model_dump(exclude_unset=True)
        for name in NOT_NULLABLE:
            if name in changes and changes[name] is None:
                changes.pop(name)

        cost = changes.get("cost", shipment.cost)
        total = changes.get("calculated_total", shipment.calculated_total)
        if total < cost:
            raise ValidationFailed(details={"calculatedTotal": TOTAL_BELOW_COST})

        is_delivered = changes.pop("is_delivered", None)
        delivery_date = changes.pop("delivery_date", None)
        if delivery_date is not None and is_delivered is None and not shipment.is_delivered:
            raise ValidationFailed(details={"deliveryDate": "Only allowed when marking the shipment delivered"})

        shipment_repository.update_shipment(shipment, changes)
        if is_delivered is not None:
            self._set_delivered(shipment, is_delivered, delivery_date)
        elif delivery_date is not None:
            # correcting the recorded date of a delivered shipment
            shipment.delivery_date = as_utc(delivery_date)
        self.db.commit()
        self.db.refresh(shipment)
        return shipment

    def mark_delivered(self, shipment: Shipment, delivery_date: Optional[datetime] = None) -> Shipment:
        if shipment.is_delivered:
            # Already delivered: keep the original delivery date
            return shipment
        self._set_delivered(shipment, True, delivery_date)
        self.db.commit()
        self.db.refresh(shipment)
        logger.info("Shipment delivered", extra={"extra_fields": {"shipment_id": shipment.id}})
        return shipment

    def delete(self, shipment: Shipment) -> None:
        shipment_repository.delete_shipment(self.db, shipment)
        self.db.commit()
        logger.info("Shipment deleted", extra={"extra_fields": {"shipment_id": shipment.id}})

    def bulk_delete(self, ids: List[str]) -> int:
        """All-or-nothing: nothing is deleted unless every id is owned."""
        records = shipment_repository.get_shipments(self.db, ids)
        assert_all_owned(records, ids, self.user_id, shipment_repository.SHIPMENTS.label)
        deleted = shipment_repository.delete_shipments(self.db, ids)
        self.db.commit()
        logger.info("Shipments bulk deleted", extra={"extra_fields": {"count": deleted}})
        return deleted

    @staticmethod
    def _set_delivered(shipment: Shipment, delivered: bool, delivery_date: Optional[datetime]) -> None:
        if not delivered:
            shipment.is_delivered = False
            shipment.delivery_date = None
        elif not shipment.is_delivered:
            shipment.is_delivered = True
            shipment.delivery_date = as_utc(delivery_date) or utcnow()
