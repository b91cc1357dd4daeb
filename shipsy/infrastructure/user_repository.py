from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from shipsy.domain.models import User
from shipsy.infrastructure import repository
from shipsy.infrastructure.repository import EntityTable

USERS = EntityTable(model=User, label="User", sortable={"createdAt": User.created_at})


def get_user(db: Session, user_id: str) -> Optional[User]:
    return repository.find_by_id(db, USERS, user_id)


def find_by_email(db: Session, email: str) -> Optional[User]:
    return db.scalar(select(User).where(User.email == email.strip().lower()))


def phone_in_use(db: Session, phone: str, exclude_user_id: Optional[str] = None) -> bool:
    stmt = select(User.id).where(User.phone == phone)
    if exclude_user_id:
        stmt = stmt.where(User.id != exclude_user_id)
    return db.scalar(stmt.limit(1)) is not None


def create_user(db: Session, email: str, password_hash: str, name: str, phone: str) -> User:
    return repository.insert(
        db, USERS, email=email, password_hash=password_hash, name=name, phone=phone
    )
