from typing import List, Optional, Sequence, Set

from sqlalchemy import select
from sqlalchemy.orm import Session

from shipsy.domain.models import Customer, Shipment
from shipsy.infrastructure import repository
from shipsy.infrastructure.repository import EntityTable, Page

CUSTOMERS = EntityTable(
    model=Customer,
    label="Customer",
    sortable={
        "name": Customer.name,
        "createdAt": Customer.created_at,
        "phone": Customer.phone,
    },
    searchable=(Customer.name, Customer.phone, Customer.email, Customer.address),
)


def get_customer(db: Session, customer_id: str) -> Optional[Customer]:
    return repository.find_by_id(db, CUSTOMERS, customer_id)


def get_customers(db: Session, customer_ids: Sequence[str]) -> List[Customer]:
    return repository.find_by_ids(db, CUSTOMERS, customer_ids)


def list_for_user(
    db: Session,
    user_id: str,
    page: int,
    limit: int,
    search: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_order: str = "desc",
) -> Page:
    conditions = [Customer.user_id == user_id]
    matched = repository.search_clause(CUSTOMERS, search)
    if matched is not None:
        conditions.append(matched)
    return repository.paginate(db, CUSTOMERS, conditions, page, limit, sort_by, sort_order)


def search_for_user(db: Session, user_id: str, query: str, limit: int) -> List[Customer]:
    conditions = [Customer.user_id == user_id]
    matched = repository.search_clause(CUSTOMERS, query)
    if matched is not None:
        conditions.append(matched)
    return repository.select_where(db, CUSTOMERS, conditions, sort_by="name", sort_order="asc", limit=limit)


def count_for_user(db: Session, user_id: str) -> int:
    return repository.count_where(db, CUSTOMERS, Customer.user_id == user_id)


def phone_in_use(db: Session, user_id: str, phone: str, exclude_id: Optional[str] = None) -> bool:
    conditions = [Customer.user_id == user_id, Customer.phone == phone]
    if exclude_id:
        conditions.append(Customer.id != exclude_id)
    return repository.count_where(db, CUSTOMERS, *conditions) > 0


def email_in_use(db: Session, user_id: str, email: str, exclude_id: Optional[str] = None) -> bool:
    conditions = [Customer.user_id == user_id, Customer.email == email]
    if exclude_id:
        conditions.append(Customer.id != exclude_id)
    return repository.count_where(db, CUSTOMERS, *conditions) > 0


def with_shipments(db: Session, customer_ids: Sequence[str]) -> Set[str]:
    """Return the subset of ``customer_ids`` that still have shipments."""
    stmt = select(Shipment.customer_id).where(Shipment.customer_id.in_(list(customer_ids))).distinct()
    return set(db.scalars(stmt))


def create_customer(db: Session, user_id: str, **values) -> Customer:
    return repository.insert(db, CUSTOMERS, user_id=user_id, **values)


def update_customer(customer: Customer, changes: dict) -> Customer:
    return repository.apply_changes(customer, changes)


def delete_customer(db: Session, customer: Customer) -> None:
    repository.remove(db, customer)


def delete_customers(db: Session, customer_ids: Sequence[str]) -> int:
    return repository.remove_many(db, CUSTOMERS, customer_ids)
