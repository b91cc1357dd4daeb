from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query

from shipsy.application.pagination import DEFAULT_LIMIT, DEFAULT_PAGE, clamp_limit
from shipsy.application.schemas import (
    ApiResponse,
    BulkDeleteRequest,
    BulkDeleteResult,
    CustomerRead,
    DeliverRequest,
    PageOf,
    ShipmentCreate,
    ShipmentRead,
    ShipmentStats,
    ShipmentUpdate,
    ShipmentWithCustomer,
)
from shipsy.application.shipment_service import ShipmentService
from shipsy.domain.errors import ValidationFailed
from shipsy.domain.models import Shipment, ShipmentMode, ShipmentType, as_utc
from shipsy.infrastructure.shipment_repository import ShipmentFilters
from .deps import get_shipment_service, owned_shipment
from .envelope import ok, paged

router = APIRouter(prefix="/api/shipments", tags=["shipments"])

ShipmentSort = Literal["createdAt", "deliveryDate", "cost", "calculatedTotal", "type"]
SortOrder = Literal["asc", "desc"]


def _parse_choice(enum_cls, value: Optional[str], field: str):
    if value is None or not value.strip():
        return None
    try:
        return enum_cls(value.strip().upper())
    except ValueError:
        choices = ", ".join(member.value for member in enum_cls)
        raise ValidationFailed(details={field: f"Must be one of: {choices}"})


def _read_many(shipments) -> List[ShipmentRead]:
    return [ShipmentRead.model_validate(s) for s in shipments]


@router.get("/", response_model=ApiResponse[PageOf[ShipmentRead]])
def list_shipments(
    page: int = Query(DEFAULT_PAGE, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, description="Values above 100 are capped at 100"),
    type: Optional[str] = Query(None, description="LOCAL, NATIONAL or INTERNATIONAL"),
    mode: Optional[str] = Query(None, description="LAND, AIR or WATER"),
    is_delivered: Optional[bool] = Query(None, alias="isDelivered"),
    customer_id: Optional[UUID] = Query(None, alias="customerId"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    search: Optional[str] = Query(None, max_length=255, description="Matches start or end location"),
    sort_by: ShipmentSort = Query("createdAt", alias="sortBy"),
    sort_order: SortOrder = Query("desc", alias="sortOrder"),
    service: ShipmentService = Depends(get_shipment_service),
):
    filters = ShipmentFilters(
        type=_parse_choice(ShipmentType, type, "type"),
        mode=_parse_choice(ShipmentMode, mode, "mode"),
        is_delivered=is_delivered,
        customer_id=str(customer_id) if customer_id else None,
        start_date=as_utc(start_date),
        end_date=as_utc(end_date),
        search=search,
    )
    limit = clamp_limit(limit)
    result = service.list(filters, page, limit, sort_by=sort_by, sort_order=sort_order)
    return paged(result, page, limit, ShipmentRead, "Shipments retrieved successfully")


@router.post("/", response_model=ApiResponse[ShipmentRead], status_code=201)
def create_shipment(payload: ShipmentCreate, service: ShipmentService = Depends(get_shipment_service)):
    shipment = service.create(payload)
    return ok(ShipmentRead.model_validate(shipment), "Shipment created successfully")


@router.get("/pending", response_model=ApiResponse[List[ShipmentRead]])
def pending_shipments(service: ShipmentService = Depends(get_shipment_service)):
    return ok(_read_many(service.pending()), "Pending shipments retrieved successfully")


@router.get("/delivered", response_model=ApiResponse[List[ShipmentRead]])
def delivered_shipments(service: ShipmentService = Depends(get_shipment_service)):
    return ok(_read_many(service.delivered()), "Delivered shipments retrieved successfully")


@router.get("/stats", response_model=ApiResponse[ShipmentStats])
def shipment_stats(service: ShipmentService = Depends(get_shipment_service)):
    stats = service.stats()
    stats["recent_shipments"] = _read_many(stats["recent_shipments"])
    return ok(ShipmentStats(**stats), "Shipment statistics retrieved successfully")


@router.delete("/bulk", response_model=ApiResponse[BulkDeleteResult])
def bulk_delete_shipments(payload: BulkDeleteRequest, service: ShipmentService = Depends(get_shipment_service)):
    deleted = service.bulk_delete(payload.id_strings)
    return ok(BulkDeleteResult(deleted=deleted), f"{deleted} shipments deleted successfully")


@router.get("/{shipment_id}", response_model=ApiResponse[ShipmentWithCustomer])
def get_shipment(
    include_customer: bool = Query(False, alias="includeCustomer"),
    shipment: Shipment = Depends(owned_shipment),
):
    body = ShipmentRead.model_validate(shipment)
    if include_customer:
        body = ShipmentWithCustomer(
            **body.model_dump(), customer=CustomerRead.model_validate(shipment.customer)
        )
    return ok(body, "Shipment retrieved successfully")


@router.put("/{shipment_id}", response_model=ApiResponse[ShipmentRead])
def update_shipment(
    payload: ShipmentUpdate,
    shipment: Shipment = Depends(owned_shipment),
    service: ShipmentService = Depends(get_shipment_service),
):
    shipment = service.update(shipment, payload)
    return ok(ShipmentRead.model_validate(shipment), "Shipment updated successfully")


@router.patch("/{shipment_id}/deliver", response_model=ApiResponse[ShipmentRead])
def mark_delivered(
    payload: Optional[DeliverRequest] = Body(None),
    shipment: Shipment = Depends(owned_shipment),
    service: ShipmentService = Depends(get_shipment_service),
):
    delivery_date = payload.delivery_date if payload else None
    shipment = service.mark_delivered(shipment, delivery_date)
    return ok(ShipmentRead.model_validate(shipment), "Shipment marked as delivered")


@router.delete("/{shipment_id}", response_model=ApiResponse[None])
def delete_shipment(
    shipment: Shipment = Depends(owned_shipment),
    service: ShipmentService = Depends(get_shipment_service),
):
    service.delete(shipment)
    return ok(None, "Shipment deleted successfully")
