from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query

from shipsy.application.customer_service import CustomerService
from shipsy.application.pagination import DEFAULT_LIMIT, DEFAULT_PAGE, clamp_limit
from shipsy.application.schemas import (
    ApiResponse,
    BulkDeleteRequest,
    BulkDeleteResult,
    CustomerCreate,
    CustomerRead,
    CustomerStats,
    CustomerUpdate,
    PageOf,
)
from shipsy.domain.models import Customer
from .deps import get_customer_service, owned_customer
from .envelope import ok, paged

router = APIRouter(prefix="/api/customers", tags=["customers"])

CustomerSort = Literal["name", "createdAt", "phone"]
SortOrder = Literal["asc", "desc"]


@router.get("/", response_model=ApiResponse[PageOf[CustomerRead]])
def list_customers(
    page: int = Query(DEFAULT_PAGE, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, description="Values above 100 are capped at 100"),
    search: Optional[str] = Query(None, max_length=255, description="Matches name, phone, email or address"),
    sort_by: CustomerSort = Query("createdAt", alias="sortBy"),
    sort_order: SortOrder = Query("desc", alias="sortOrder"),
    service: CustomerService = Depends(get_customer_service),
):
    limit = clamp_limit(limit)
    result = service.list(page, limit, search=search, sort_by=sort_by, sort_order=sort_order)
    return paged(result, page, limit, CustomerRead, "Customers retrieved successfully")


@router.post("/", response_model=ApiResponse[CustomerRead], status_code=201)
def create_customer(payload: CustomerCreate, service: CustomerService = Depends(get_customer_service)):
    customer = service.create(payload)
    return ok(CustomerRead.model_validate(customer), "Customer created successfully")


@router.get("/search", response_model=ApiResponse[List[CustomerRead]])
def search_customers(
    query: str = Query(..., min_length=1, max_length=255),
    limit: int = Query(DEFAULT_LIMIT, ge=1),
    service: CustomerService = Depends(get_customer_service),
):
    customers = service.search(query, clamp_limit(limit))
    return ok([CustomerRead.model_validate(c) for c in customers], "Customers retrieved successfully")


@router.get("/stats", response_model=ApiResponse[CustomerStats])
def customer_stats(service: CustomerService = Depends(get_customer_service)):
    return ok(CustomerStats(**service.stats()), "Customer statistics retrieved successfully")


@router.delete("/bulk", response_model=ApiResponse[BulkDeleteResult])
def bulk_delete_customers(payload: BulkDeleteRequest, service: CustomerService = Depends(get_customer_service)):
    deleted = service.bulk_delete(payload.id_strings)
    return ok(BulkDeleteResult(deleted=deleted), f"{deleted} customers deleted successfully")


@router.get("/{customer_id}", response_model=ApiResponse[CustomerRead])
def get_customer(customer: Customer = Depends(owned_customer)):
    return ok(CustomerRead.model_validate(customer), "Customer retrieved successfully")


@router.put("/{customer_id}", response_model=ApiResponse[CustomerRead])
def update_customer(
    payload: CustomerUpdate,
    customer: Customer = Depends(owned_customer),
    service: CustomerService = Depends(get_customer_service),
):
    customer = service.update(customer, payload)
    return ok(CustomerRead.model_validate(customer), "Customer updated successfully")


@router.delete("/{customer_id}", response_model=ApiResponse[None])
def delete_customer(
    customer: Customer = Depends(owned_customer),
    service: CustomerService = Depends(get_customer_service),
):
    service.delete(customer)
    return ok(None, "Customer deleted successfully")
