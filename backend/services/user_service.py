"""
user_service.py — Account registration and credential checks
"""

import logging
import uuid
from datetime import datetime

from auth import hash_password, verify_password
from errors import ValidationError, UserAlreadyExists, InvalidCredentials
from models.records import UserRecord
from stores.base import UserStore

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


class UserService:
    @staticmethod
    def register(users: UserStore, email: str, password: str, name: str, now: datetime) -> UserRecord:
        if not email or "@" not in email:
            raise ValidationError("Valid email is required", details={"email": "Valid email is required"})
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
                details={"password": f"Password must be at least {MIN_PASSWORD_LENGTH} characters"},
            )
        if not name or not name.strip():
            raise ValidationError("Name is required", details={"name": "Name is required"})

        email = email.strip().lower()
        if users.get_by_email(email):
            raise UserAlreadyExists()

        user = UserRecord(
            id=str(uuid.uuid4()),
            email=email,
            password_hash=hash_password(password),
            name=name.strip(),
            created_at=now,
            updated_at=now,
            last_login_at=None,
        )
        created = users.create(user)
        logger.info(f"Registered user {created.id}")
        return created

    @staticmethod
    def authenticate(users: UserStore, email: str, password: str, now: datetime) -> UserRecord:
        if not email or not password:
            raise ValidationError("Email and password are required")

        user = users.get_by_email(email.strip().lower())
        if user is None or not verify_password(password, user.password_hash):
            logger.info(f"Login failed for {email}")
            raise InvalidCredentials()

        users.record_login(user.id, now)
        user.last_login_at = now
        return user
