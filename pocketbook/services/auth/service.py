from __future__ import annotations

from datetime import timedelta

from loguru import logger
from sqlmodel.ext.asyncio.session import AsyncSession

from pocketbook.exceptions import (
    BadCredentialError,
    DuplicateEmailError,
    NotAuthenticatedError,
    NotFoundError,
    ValidationError,
    WeakPasswordError,
)
from pocketbook.services.auth.utils import (
    ACCESS_TOKEN,
    REFRESH_TOKEN,
    create_access_token,
    decode_token,
    get_hash_password,
    password_verify,
)
from pocketbook.services.base import Service
from pocketbook.services.database.models.base import utcnow
from pocketbook.services.database.models.user import User
from pocketbook.services.database.models.user.crud import get_user_by_email, normalize_email
from pocketbook.services.settings.service import SettingsService

MIN_PASSWORD_LENGTH = 6


class AuthService(Service):
    """Account store: creates users, checks credentials and issues tokens."""

    name = "auth_service"

    def __init__(self, settings_service: SettingsService):
        self.settings_service = settings_service

    async def create_user(self, db: AsyncSession, name: str, email: str, raw_password: str) -> User:
        name = (name or "").strip()
        email = normalize_email(email or "")
        if not name or not email or not raw_password:
            raise ValidationError("Name, email and password are required")
        if "@" not in email:
            raise ValidationError("Invalid email address")
        if len(raw_password) < MIN_PASSWORD_LENGTH:
            raise WeakPasswordError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        if await get_user_by_email(db, email):
            raise DuplicateEmailError("Email already exists")

        hashed = await get_hash_password(raw_password)
        user = User(name=name, email=email, password=hashed)
        db.add(user)
        await db.commit()
        await db.refresh(user)
        logger.info(f"Created user {user.id}")
        return user

    async def verify(self, db: AsyncSession, email: str, raw_password: str) -> User:
        user = await get_user_by_email(db, email or "")
        if not user:
            raise NotFoundError("User not found")
        if not await password_verify(raw_password or "", user.password):
            raise BadCredentialError("Invalid credentials")
        return user

    async def rename(self, db: AsyncSession, user: User, name: str) -> User:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Name is required")
        user.name = name
        user.updated_at = utcnow()
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return user

    def issue_tokens(self, user_id: int) -> dict:
        settings = self.settings_service.settings
        access = create_access_token(
            {"sub": str(user_id), "type": ACCESS_TOKEN}, timedelta(minutes=settings.access_expire_min)
        )
        refresh = create_access_token(
            {"sub": str(user_id), "type": REFRESH_TOKEN}, timedelta(days=settings.refresh_expire_days)
        )
        return {"access": access, "refresh": refresh}

    def refresh_access(self, refresh_token: str) -> str:
        user_id = decode_token(refresh_token, REFRESH_TOKEN)
        if not user_id:
            raise NotAuthenticatedError("Invalid refresh token")
        settings = self.settings_service.settings
        return create_access_token(
            {"sub": str(user_id), "type": ACCESS_TOKEN}, timedelta(minutes=settings.access_expire_min)
        )
