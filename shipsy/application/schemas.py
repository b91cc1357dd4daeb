import re
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Annotated, Any, Dict, Generic, List, Optional, TypeVar
from uuid import UUID

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    EmailStr,
    Field,
    StringConstraints,
    computed_field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from shipsy.application.pagination import MAX_LIMIT
from shipsy.domain.models import ShipmentMode, ShipmentType, as_utc

T = TypeVar("T")

PHONE_PATTERN = r"^\+?[1-9]\d{9,12}$"
PASSWORD_RULE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")
MONEY_PATTERN = re.compile(r"^\d+(\.\d{1,2})?$")
MAX_MONEY = Decimal("99999999.99")
OVERDUE_AFTER_DAYS = 30


class CamelModel(BaseModel):
    """Snake case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def _strip(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


def _empty_to_none(value: Any) -> Any:
    value = _strip(value)
    return None if value == "" else value


def _lower(value: Any) -> Any:
    value = _strip(value)
    return value.lower() if isinstance(value, str) else value


def _upper(value: Any) -> Any:
    value = _strip(value)
    return value.upper() if isinstance(value, str) else value


def parse_money(value: Any) -> Decimal:
    """Accept numbers or numeric strings with at most two decimals."""
    if isinstance(value, bool):
        raise ValueError("must be a number")
    if isinstance(value, (int, float, Decimal)):
        value = str(value)
    if not isinstance(value, str) or not MONEY_PATTERN.match(value.strip()):
        raise ValueError("must be a non-negative amount with at most 2 decimal places")
    try:
        amount = Decimal(value.strip()).quantize(Decimal("0.01"))
    except InvalidOperation:
        raise ValueError("must be a valid amount")
    if amount > MAX_MONEY:
        raise ValueError(f"must not exceed {MAX_MONEY}")
    return amount


Money = Annotated[Decimal, BeforeValidator(parse_money)]
LowerEmail = Annotated[EmailStr, BeforeValidator(_lower)]
OptionalEmail = Annotated[Optional[EmailStr], BeforeValidator(lambda v: _empty_to_none(_lower(v)))]
Phone = Annotated[str, StringConstraints(strip_whitespace=True, pattern=PHONE_PATTERN)]
PersonName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=255)]
Address = Annotated[str, StringConstraints(strip_whitespace=True, min_length=5, max_length=1000)]
Location = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=500)]
TypeField = Annotated[ShipmentType, BeforeValidator(_upper)]
ModeField = Annotated[ShipmentMode, BeforeValidator(_upper)]
# Naive datetimes are taken to be UTC
UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


# Envelope

class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    message: str
    data: Optional[T] = None


class PaginationMeta(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool


class PageOf(CamelModel, Generic[T]):
    items: List[T]
    meta: PaginationMeta


class BulkDeleteRequest(CamelModel):
    ids: List[UUID] = Field(min_length=1, max_length=MAX_LIMIT)

    @property
    def id_strings(self) -> List[str]:
        # de-duplicated, order preserved
        return list(dict.fromkeys(str(i) for i in self.ids))


class BulkDeleteResult(CamelModel):
    deleted: int


# Auth

def _check_password_strength(value: str) -> str:
    if not PASSWORD_RULE.match(value):
        raise ValueError("Password must contain at least one uppercase letter, one lowercase letter, and one number")
    return value


class RegisterRequest(CamelModel):
    email: LowerEmail
    password: str = Field(min_length=8, max_length=100)
    name: PersonName
    phone: Phone

    _password_strength = field_validator("password")(_check_password_strength)


class LoginRequest(CamelModel):
    email: LowerEmail
    password: str = Field(min_length=1, max_length=100)


class RefreshRequest(CamelModel):
    refresh_token: Optional[str] = None


class ProfileUpdate(CamelModel):
    name: Optional[PersonName] = None
    phone: Optional[Phone] = None


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=8, max_length=100)
    confirm_password: str

    _password_strength = field_validator("new_password")(_check_password_strength)

    @model_validator(mode="after")
    def passwords_match(self) -> "ChangePasswordRequest":
        if self.new_password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class UserRead(CamelModel):
    id: str
    email: str
    name: str
    phone: str
    created_at: UtcDatetime
    updated_at: UtcDatetime


class TokensRead(CamelModel):
    access_token: str
    refresh_token: str
    expires_in: int


class AuthResult(CamelModel):
    user: UserRead
    tokens: TokensRead


class RefreshResult(CamelModel):
    tokens: TokensRead


# Customers

class CustomerCreate(CamelModel):
    name: PersonName
    phone: Phone
    address: Address
    email: OptionalEmail = None


class CustomerUpdate(CamelModel):
    name: Optional[PersonName] = None
    phone: Optional[Phone] = None
    address: Optional[Address] = None
    email: OptionalEmail = None


class CustomerRead(CamelModel):
    id: str
    user_id: str
    name: str
    phone: str
    address: str
    email: Optional[str] = None
    created_at: UtcDatetime
    updated_at: UtcDatetime


class CustomerStats(CamelModel):
    total_customers: int


# Shipments

class ShipmentCreate(CamelModel):
    customer_id: UUID
    type: TypeField
    mode: ModeField
    start_location: Location
    end_location: Location
    cost: Money
    calculated_total: Money
    estimated_delivery_date: Optional[UtcDatetime] = None

    @model_validator(mode="after")
    def total_covers_cost(self) -> "ShipmentCreate":
        if self.calculated_total < self.cost:
            raise ValueError("Calculated total must be greater than or equal to cost")
        return self


class ShipmentUpdate(CamelModel):
    type: Optional[TypeField] = None
    mode: Optional[ModeField] = None
    start_location: Optional[Location] = None
    end_location: Optional[Location] = None
    cost: Optional[Money] = None
    calculated_total: Optional[Money] = None
    is_delivered: Optional[bool] = None
    delivery_date: Optional[UtcDatetime] = None
    estimated_delivery_date: Optional[UtcDatetime] = None


class DeliverRequest(CamelModel):
    delivery_date: Optional[UtcDatetime] = None


class ShipmentRead(CamelModel):
    id: str
    user_id: str
    customer_id: str
    type: ShipmentType
    mode: ShipmentMode
    start_location: str
    end_location: str
    cost: Decimal
    calculated_total: Decimal
    is_delivered: bool
    delivery_date: Optional[UtcDatetime] = None
    estimated_delivery_date: Optional[UtcDatetime] = None
    created_at: UtcDatetime
    updated_at: UtcDatetime

    @computed_field
    @property
    def status(self) -> str:
        if self.is_delivered:
            return "delivered"
        age = datetime.now(timezone.utc) - as_utc(self.created_at)
        return "overdue" if age.days > OVERDUE_AFTER_DAYS else "pending"

    @computed_field(alias="taxAmount")
    @property
    def tax_amount(self) -> Decimal:
        return (self.calculated_total - self.cost).quantize(Decimal("0.01"))

    @computed_field(alias="daysInTransit")
    @property
    def days_in_transit(self) -> Optional[int]:
        if not self.is_delivered or self.delivery_date is None:
            return None
        return max(0, (as_utc(self.delivery_date) - as_utc(self.created_at)).days)

    @computed_field(alias="route")
    @property
    def route(self) -> str:
        return f"{self.start_location} → {self.end_location}"


class ShipmentWithCustomer(ShipmentRead):
    customer: Optional[CustomerRead] = None


class ShipmentStats(CamelModel):
    total_shipments: int
    pending_shipments: int
    delivered_shipments: int
    total_revenue: Decimal
    average_cost: Decimal
    by_type: Dict[str, int]
    by_mode: Dict[str, int]
    recent_shipments: List[ShipmentRead]
