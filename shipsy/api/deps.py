"""Request dependencies: the auth guard and owned-record loaders.

Every tenant-scoped route depends on ``get_current_user``; routes that act
on a single record take it from ``owned_customer`` / ``owned_shipment``,
which only ever hand back records belonging to the caller.
"""

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from shipsy.application.customer_service import CustomerService
from shipsy.application.ownership import assert_owned
from shipsy.application.shipment_service import ShipmentService
from shipsy.auth_local import ACCESS, InvalidToken, extract_bearer_token, verify_token
from shipsy.core.logging_config import set_request_context
from shipsy.domain.errors import UnauthorizedError
from shipsy.domain.models import Customer, Shipment
from shipsy.infrastructure import customer_repository, shipment_repository
from shipsy.infrastructure.db import get_db
from .cookies import read_access_cookie


@dataclass(frozen=True)
class AuthContext:
    user_id: str
    email: Optional[str] = None


async def get_current_user(request: Request) -> AuthContext:
    # Header wins over cookie when both are present
    token = extract_bearer_token(request.headers.get("Authorization")) or read_access_cookie(request)
    if not token:
        raise UnauthorizedError()
    try:
        payload = verify_token(token, ACCESS)
    except InvalidToken:
        raise UnauthorizedError()

    context = AuthContext(user_id=payload.user_id, email=payload.email)
    request.state.auth = context
    set_request_context(user_id=context.user_id)
    return context


def get_customer_service(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_current_user),
) -> CustomerService:
    return CustomerService(db, auth.user_id)


def get_shipment_service(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_current_user),
) -> ShipmentService:
    return ShipmentService(db, auth.user_id)


def owned_customer(
    customer_id: UUID,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_current_user),
) -> Customer:
    customer = customer_repository.get_customer(db, str(customer_id))
    return assert_owned(customer, auth.user_id, customer_repository.CUSTOMERS.label)


def owned_shipment(
    shipment_id: UUID,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_current_user),
) -> Shipment:
    shipment = shipment_repository.get_shipment(db, str(shipment_id))
    return assert_owned(shipment, auth.user_id, shipment_repository.SHIPMENTS.label)
