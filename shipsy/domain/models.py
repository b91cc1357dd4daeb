import enum
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalise to UTC; naive values are taken to be UTC already (SQLite drops the offset)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Base(DeclarativeBase):
    pass


class ShipmentType(str, enum.Enum):
    LOCAL = "LOCAL"
    NATIONAL = "NATIONAL"
    INTERNATIONAL = "INTERNATIONAL"


class ShipmentMode(str, enum.Enum):
    LAND = "LAND"
    AIR = "AIR"
    WATER = "WATER"


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        Index("users_email_idx", "email"),
        Index("users_phone_idx", "phone"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    email: Mapped[str] = mapped_column(String(255), unique=True)
    password_hash: Mapped[str] = mapped_column(Text)
    name: Mapped[str] = mapped_column(String(255))
    phone: Mapped[str] = mapped_column(String(20))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class Customer(Base):
    __tablename__ = "customers"
    __table_args__ = (
        # Phone numbers are unique per tenant, not globally
        UniqueConstraint("user_id", "phone", name="customers_user_phone_key"),
        Index("customers_user_id_idx", "user_id"),
        Index("customers_phone_idx", "phone"),
        Index("customers_email_idx", "email"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"))
    name: Mapped[str] = mapped_column(String(255))
    phone: Mapped[str] = mapped_column(String(20))
    address: Mapped[str] = mapped_column(Text)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class Shipment(Base):
    __tablename__ = "shipments"
    __table_args__ = (
        Index("shipments_user_id_idx", "user_id"),
        Index("shipments_customer_id_idx", "customer_id"),
        Index("shipments_type_idx", "type"),
        Index("shipments_is_delivered_idx", "is_delivered"),
        Index("shipments_created_at_idx", "created_at"),
        Index("shipments_user_delivery_status_idx", "user_id", "is_delivered"),
        Index("shipments_user_type_idx", "user_id", "type"),
        Index("shipments_customer_delivery_idx", "customer_id", "is_delivered"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"))
    customer_id: Mapped[str] = mapped_column(String(36), ForeignKey("customers.id", ondelete="RESTRICT"))
    type: Mapped[ShipmentType] = mapped_column(Enum(ShipmentType, name="shipment_type"))
    mode: Mapped[ShipmentMode] = mapped_column(Enum(ShipmentMode, name="shipment_mode"))
    start_location: Mapped[str] = mapped_column(String(500))
    end_location: Mapped[str] = mapped_column(String(500))
    cost: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    calculated_total: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    is_delivered: Mapped[bool] = mapped_column(Boolean, default=False)
    # Set by whichever mutation flips is_delivered to true
    delivery_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    estimated_delivery_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    customer: Mapped["Customer"] = relationship()
