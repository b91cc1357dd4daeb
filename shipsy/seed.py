"""Populate the database with demo tenants, customers and shipments.

    python -m shipsy.seed --users 5

Every demo user signs in with DEMO_PASSWORD. Re-running skips users whose
email already exists.
"""

import argparse
import random
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from shipsy.core.logging_config import get_logger, setup_logging
from shipsy.core_settings import get_settings
from shipsy.domain.models import ShipmentMode, ShipmentType, utcnow
from shipsy.infrastructure import customer_repository, shipment_repository, user_repository
from shipsy.infrastructure.db import SessionLocal, init_models
from shipsy.passwords import hash_password

logger = get_logger(__name__)

DEMO_PASSWORD = "Passw0rd1"
TAX_RATE = Decimal("0.18")

FIRST_NAMES = ["Aarav", "Priya", "Rohan", "Ananya", "Vikram", "Meera", "Kabir", "Isha", "Arjun", "Diya"]
LAST_NAMES = ["Sharma", "Patel", "Reddy", "Iyer", "Gupta", "Nair", "Singh", "Das", "Mehta", "Rao"]
CITIES = ["Mumbai", "Delhi", "Bengaluru", "Chennai", "Kolkata", "Hyderabad", "Pune", "Jaipur", "Ahmedabad", "Kochi"]
PORTS = ["Singapore", "Dubai", "Rotterdam", "Hamburg", "Shanghai", "Los Angeles"]
STREETS = ["MG Road", "Park Street", "Brigade Road", "Linking Road", "Anna Salai", "Banjara Hills"]


@dataclass
class SeedCounts:
    users: int = 0
    customers: int = 0
    shipments: int = 0


def _phone(rng: random.Random) -> str:
    return f"+91{rng.randint(6, 9)}{rng.randint(0, 999999999):09d}"


def _route(rng: random.Random, shipment_type: ShipmentType) -> tuple:
    start = rng.choice(CITIES)
    if shipment_type == ShipmentType.LOCAL:
        return f"{rng.choice(STREETS)}, {start}", f"{rng.choice(STREETS)}, {start}"
    if shipment_type == ShipmentType.NATIONAL:
        end = rng.choice([c for c in CITIES if c != start])
        return start, end
    return start, rng.choice(PORTS)


def _mode(rng: random.Random, shipment_type: ShipmentType) -> ShipmentMode:
    if shipment_type == ShipmentType.LOCAL:
        return ShipmentMode.LAND
    return rng.choice(list(ShipmentMode))


def seed(
    db: Session,
    users: int = 5,
    customers_per_user: tuple = (15, 25),
    shipments_per_customer: tuple = (0, 3),
    seed_value: Optional[int] = None,
) -> SeedCounts:
    rng = random.Random(seed_value)
    counts = SeedCounts()
    password_hash = hash_password(DEMO_PASSWORD)

    for index in range(1, users + 1):
        email = f"demo{index}@shipsy.io"
        if user_repository.find_by_email(db, email):
            logger.info(f"Skipping existing demo user {email}")
            continue
        user = user_repository.create_user(
            db,
            email=email,
            password_hash=password_hash,
            name=f"{rng.choice(FIRST_NAMES)} {rng.choice(LAST_NAMES)}",
            phone=_phone(rng),
        )
        counts.users += 1

        used_phones = set()
        for _ in range(rng.randint(*customers_per_user)):
            phone = _phone(rng)
            while phone in used_phones:
                phone = _phone(rng)
            used_phones.add(phone)
            name = f"{rng.choice(FIRST_NAMES)} {rng.choice(LAST_NAMES)}"
            customer = customer_repository.create_customer(
                db,
                user.id,
                name=name,
                phone=phone,
                address=f"{rng.randint(1, 400)} {rng.choice(STREETS)}, {rng.choice(CITIES)}",
                email=f"{name.lower().replace(' ', '.')}{rng.randint(1, 999)}@example.com" if rng.random() < 0.7 else None,
            )
            counts.customers += 1

            for _ in range(rng.randint(*shipments_per_customer)):
                shipment_type = rng.choice(list(ShipmentType))
                start, end = _route(rng, shipment_type)
                cost = Decimal(rng.randint(5000, 500000)) / 100
                total = (cost * (1 + TAX_RATE)).quantize(Decimal("0.01"))
                created = utcnow() - timedelta(days=rng.randint(0, 60))
                delivered = rng.random() < 0.5
                shipment_repository.create_shipment(
                    db,
                    user.id,
                    customer_id=customer.id,
                    type=shipment_type,
                    mode=_mode(rng, shipment_type),
                    start_location=start,
                    end_location=end,
                    cost=cost,
                    calculated_total=total,
                    is_delivered=delivered,
                    delivery_date=created + timedelta(days=rng.randint(1, 10)) if delivered else None,
                    estimated_delivery_date=created + timedelta(days=rng.randint(2, 14)),
                    created_at=created,
                )
                counts.shipments += 1

    db.commit()
    logger.info(
        "Seed completed",
        extra={"extra_fields": {"users": counts.users, "customers": counts.customers, "shipments": counts.shipments}},
    )
    return counts


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Seed the Shipsy database with demo data")
    parser.add_argument("--users", type=int, default=5)
    parser.add_argument("--seed", type=int, default=None, help="random seed for reproducible data")
    args = parser.parse_args(argv)

    settings = get_settings()
    setup_logging(settings.SERVICE_NAME, settings.LOG_LEVEL, settings.ENVIRONMENT, settings.SERVICE_VERSION)
    init_models()
    with SessionLocal() as db:
        counts = seed(db, users=args.users, seed_value=args.seed)
    print(f"Seeded {counts.users} users, {counts.customers} customers, {counts.shipments} shipments")


if __name__ == "__main__":
    main()
