from typing import Optional, Tuple

from sqlalchemy.orm import Session

from shipsy.auth_local import REFRESH, InvalidToken, TokenPair, issue_token_pair, verify_token
from shipsy.core.logging_config import get_logger
from shipsy.domain.errors import (
    ConflictError,
    IncorrectPassword,
    InvalidCredentials,
    NotFoundError,
    UnauthorizedError,
)
from shipsy.domain.models import User
from shipsy.infrastructure import repository, user_repository
from shipsy.infrastructure.db import commit_or_conflict
from shipsy.passwords import hash_password, verify_password
from .schemas import ChangePasswordRequest, LoginRequest, ProfileUpdate, RegisterRequest

logger = get_logger(__name__)


class AuthService:
    def __init__(self, db: Session):
        self.db = db

    def register(self, data: RegisterRequest) -> Tuple[User, TokenPair]:
        if user_repository.find_by_email(self.db, data.email):
            raise ConflictError("Email already exists")
        if user_repository.phone_in_use(self.db, data.phone):
            raise ConflictError("Phone number already exists")

        # The unique index on email settles concurrent registrations
        with commit_or_conflict(self.db, "Email already exists"):
            user = user_repository.create_user(
                self.db,
                email=data.email,
                password_hash=hash_password(data.password),
                name=data.name,
                phone=data.phone,
            )
        logger.info("User registered", extra={"extra_fields": {"user_id": user.id}})
        return user, issue_token_pair(user.id, user.email)

    def login(self, data: LoginRequest) -> Tuple[User, TokenPair]:
        user = user_repository.find_by_email(self.db, data.email)
        # Unknown email and wrong password are indistinguishable to the caller
        if user is None or not verify_password(data.password, user.password_hash):
            logger.warning("Rejected login attempt")
            raise InvalidCredentials()
        logger.info("User logged in", extra={"extra_fields": {"user_id": user.id}})
        return user, issue_token_pair(user.id, user.email)

    def refresh(self, refresh_token: Optional[str]) -> TokenPair:
        if not refresh_token:
            raise UnauthorizedError("Refresh token required")
        try:
            payload = verify_token(refresh_token, REFRESH)
        except InvalidToken:
            raise UnauthorizedError("Invalid or expired refresh token")
        user = user_repository.get_user(self.db, payload.user_id)
        if user is None:
            raise UnauthorizedError("Invalid or expired refresh token")
        return issue_token_pair(user.id, user.email)

    def get_user(self, user_id: str) -> User:
        user = user_repository.get_user(self.db, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def update_profile(self, user_id: str, data: ProfileUpdate) -> User:
        user = self.get_user(user_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if changes.get("phone") not in (None, user.phone):
            if user_repository.phone_in_use(self.db, changes["phone"], exclude_user_id=user.id):
                raise ConflictError("Phone number already exists")
        with commit_or_conflict(self.db, "Phone number already exists"):
            repository.apply_changes(user, changes)
        self.db.refresh(user)
        return user

    def change_password(self, user_id: str, data: ChangePasswordRequest) -> None:
        user = self.get_user(user_id)
        if not verify_password(data.current_password, user.password_hash):
            raise IncorrectPassword()
        user.password_hash = hash_password(data.new_password)
        self.db.commit()
        logger.info("Password changed", extra={"extra_fields": {"user_id": user.id}})
