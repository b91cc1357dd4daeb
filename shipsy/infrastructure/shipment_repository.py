from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from shipsy.domain.models import Shipment, ShipmentMode, ShipmentType
from shipsy.infrastructure import repository
from shipsy.infrastructure.repository import EntityTable, Page

SHIPMENTS = EntityTable(
    model=Shipment,
    label="Shipment",
    sortable={
        "createdAt": Shipment.created_at,
        "deliveryDate": Shipment.delivery_date,
        "cost": Shipment.cost,
        "calculatedTotal": Shipment.calculated_total,
        "type": Shipment.type,
    },
    searchable=(Shipment.start_location, Shipment.end_location),
)


@dataclass
class ShipmentFilters:
    type: Optional[ShipmentType] = None
    mode: Optional[ShipmentMode] = None
    is_delivered: Optional[bool] = None
    customer_id: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    search: Optional[str] = None

    def conditions(self, user_id: str) -> list:
        conditions = [Shipment.user_id == user_id]
        if self.type is not None:
            conditions.append(Shipment.type == self.type)
        if self.mode is not None:
            conditions.append(Shipment.mode == self.mode)
        if self.is_delivered is not None:
            conditions.append(Shipment.is_delivered.is_(self.is_delivered))
        if self.customer_id:
            conditions.append(Shipment.customer_id == self.customer_id)
        if self.start_date is not None:
            conditions.append(Shipment.created_at >= self.start_date)
        if self.end_date is not None:
            conditions.append(Shipment.created_at <= self.end_date)
        matched = repository.search_clause(SHIPMENTS, self.search)
        if matched is not None:
            conditions.append(matched)
        return conditions


def _money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(Decimal("0.01"))


def get_shipment(db: Session, shipment_id: str) -> Optional[Shipment]:
    return repository.find_by_id(db, SHIPMENTS, shipment_id)


def get_shipments(db: Session, shipment_ids: Sequence[str]) -> List[Shipment]:
    return repository.find_by_ids(db, SHIPMENTS, shipment_ids)


def list_for_user(
    db: Session,
    user_id: str,
    filters: ShipmentFilters,
    page: int,
    limit: int,
    sort_by: Optional[str] = None,
    sort_order: str = "desc",
) -> Page:
    return repository.paginate(db, SHIPMENTS, filters.conditions(user_id), page, limit, sort_by, sort_order)


def list_by_delivery_state(db: Session, user_id: str, delivered: bool) -> List[Shipment]:
    conditions = ShipmentFilters(is_delivered=delivered).conditions(user_id)
    sort_by = "deliveryDate" if delivered else "createdAt"
    return repository.select_where(db, SHIPMENTS, conditions, sort_by=sort_by, sort_order="desc")


def recent_for_user(db: Session, user_id: str, limit: int = 5) -> List[Shipment]:
    return repository.select_where(
        db, SHIPMENTS, [Shipment.user_id == user_id], sort_by="createdAt", sort_order="desc", limit=limit
    )


def totals_for_user(db: Session, user_id: str) -> Dict[str, object]:
    stmt = select(
        func.count(Shipment.id),
        func.sum(case((Shipment.is_delivered.is_(True), 1), else_=0)),
        func.sum(Shipment.calculated_total),
        func.avg(Shipment.cost),
    ).where(Shipment.user_id == user_id)
    total, delivered, revenue, average_cost = db.execute(stmt).one()
    total = total or 0
    delivered = int(delivered or 0)
    return {
        "total": total,
        "delivered": delivered,
        "pending": total - delivered,
        "revenue": _money(revenue),
        "average_cost": _money(average_cost),
    }


def counts_by(db: Session, user_id: str, column) -> Dict[str, int]:
    stmt = (
        select(column, func.count(Shipment.id))
        .where(Shipment.user_id == user_id)
        .group_by(column)
    )
    return {getattr(key, "value", key): count for key, count in db.execute(stmt)}


def create_shipment(db: Session, user_id: str, **values) -> Shipment:
    return repository.insert(db, SHIPMENTS, user_id=user_id, **values)


def update_shipment(shipment: Shipment, changes: dict) -> Shipment:
    return repository.apply_changes(shipment, changes)


def delete_shipment(db: Session, shipment: Shipment) -> None:
    repository.remove(db, shipment)


def delete_shipments(db: Session, shipment_ids: Sequence[str]) -> int:
    return repository.remove_many(db, SHIPMENTS, shipment_ids)
