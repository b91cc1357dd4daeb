from typing import List, Optional

from sqlalchemy.orm import Session

from shipsy.core.logging_config import get_logger
from shipsy.domain.errors import ConflictError
from shipsy.domain.models import Customer
from shipsy.infrastructure import customer_repository
from shipsy.infrastructure.db import commit_or_conflict
from shipsy.infrastructure.repository import Page
from .ownership import assert_all_owned
from .schemas import CustomerCreate, CustomerUpdate

logger = get_logger(__name__)

PHONE_TAKEN = "Customer with this phone number already exists"
EMAIL_TAKEN = "Customer with this email already exists"
HAS_SHIPMENTS = "Cannot delete customer with existing shipments"


class CustomerService:
    """Customer use cases for one tenant.

    Methods taking a ``Customer`` expect a record that has already passed
    the ownership check.
    """

    def __init__(self, db: Session, user_id: str):
        self.db = db
        self.user_id = user_id

    def list(self, page: int, limit: int, search: Optional[str] = None,
             sort_by: Optional[str] = None, sort_order: str = "desc") -> Page:
        return customer_repository.list_for_user(
            self.db, self.user_id, page, limit, search=search, sort_by=sort_by, sort_order=sort_order
        )

    def search(self, query: str, limit: int) -> List[Customer]:
        return customer_repository.search_for_user(self.db, self.user_id, query, limit)

    def stats(self) -> dict:
        return {"total_customers": customer_repository.count_for_user(self.db, self.user_id)}

    def create(self, data: CustomerCreate) -> Customer:
        self._check_unique(data.phone, data.email)
        with commit_or_conflict(self.db, PHONE_TAKEN):
            customer = customer_repository.create_customer(self.db, self.user_id, **data.model_dump())
        logger.info("Customer created", extra={"extra_fields": {"customer_id": customer.id}})
        return customer

    def update(self, customer: Customer, data: CustomerUpdate) -> Customer:
        changes = data.model_dump(exclude_unset=True)
        # name, phone and address cannot be cleared; email can
        for required in ("name", "phone", "address"):
            if changes.get(required, "") is None:
                changes.pop(required)
        self._check_unique(
            changes.get("phone") if changes.get("phone") != customer.phone else None,
            changes.get("email") if changes.get("email") != customer.email else None,
            exclude_id=customer.id,
        )
        with commit_or_conflict(self.db, PHONE_TAKEN):
            customer_repository.update_customer(customer, changes)
        self.db.refresh(customer)
        return customer

    def delete(self, customer: Customer) -> None:
        if customer_repository.with_shipments(self.db, [customer.id]):
            raise ConflictError(HAS_SHIPMENTS)
        with commit_or_conflict(self.db, HAS_SHIPMENTS):
            customer_repository.delete_customer(self.db, customer)
        logger.info("Customer deleted", extra={"extra_fields": {"customer_id": customer.id}})

    def bulk_delete(self, ids: List[str]) -> int:
        """All-or-nothing: every id must be owned and free of shipments."""
        records = customer_repository.get_customers(self.db, ids)
        assert_all_owned(records, ids, self.user_id, customer_repository.CUSTOMERS.label)
        if customer_repository.with_shipments(self.db, ids):
            raise ConflictError(HAS_SHIPMENTS)
        with commit_or_conflict(self.db, HAS_SHIPMENTS):
            deleted = customer_repository.delete_customers(self.db, ids)
        logger.info("Customers bulk deleted", extra={"extra_fields": {"count": deleted}})
        return deleted

    def _check_unique(self, phone: Optional[str], email: Optional[str], exclude_id: Optional[str] = None) -> None:
        if phone and customer_repository.phone_in_use(self.db, self.user_id, phone, exclude_id):
            raise ConflictError(PHONE_TAKEN)
        if email and customer_repository.email_in_use(self.db, self.user_id, email, exclude_id):
            raise ConflictError(EMAIL_TAKEN)
