from datetime import datetime, timedelta, timezone
from typing import Annotated, Optional

import jwt
from asgiref.sync import sync_to_async
from fastapi import Depends, Security
from fastapi.security import OAuth2PasswordBearer
from passlib.context import CryptContext
from sqlmodel.ext.asyncio.session import AsyncSession

from pocketbook.exceptions import NotAuthenticatedError
from pocketbook.services.database.models.user import User
from pocketbook.services.database.models.user.crud import get_user_by_id
from pocketbook.services.deps import get_admin_service, get_session, get_settings_service

ALGORITHM = "HS256"
ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_login = OAuth2PasswordBearer(tokenUrl="api/v1/login", auto_error=False)


@sync_to_async
def get_hash_password(password: str) -> str:
    return pwd_context.hash(password)


@sync_to_async
def password_verify(plain_password: str, hashed_password: str) -> bool:
    # passlib compares digests in constant time
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: timedelta) -> str:
    settings_service = get_settings_service()
    to_encode = data.copy()
    to_encode["exp"] = datetime.now(timezone.utc) + expires_delta
    return jwt.encode(to_encode, settings_service.settings.jwt_secret, algorithm=ALGORITHM)


def decode_token(token: str, expected_type: str) -> Optional[int]:
    """Return the user id carried by ``token`` or None when it is expired, malformed or of another type."""
    settings_service = get_settings_service()
    try:
        payload = jwt.decode(token, settings_service.settings.jwt_secret, algorithms=[ALGORITHM])
    except jwt.InvalidTokenError:
        return None
    if payload.get("type") != expected_type:
        return None
    try:
        return int(payload.get("sub"))
    except (TypeError, ValueError):
        return None


async def get_current_user(
    token: Annotated[Optional[str], Security(oauth2_login)],
    db: Annotated[AsyncSession, Depends(get_session)],
) -> User:
    if not token:
        raise NotAuthenticatedError("Not authenticated")
    user_id = decode_token(token, ACCESS_TOKEN)
    if not user_id:
        raise NotAuthenticatedError("Not authenticated")
    user = await get_user_by_id(db, user_id)
    if not user:
        raise NotAuthenticatedError("Not authenticated")
    return user


async def get_current_admin(user: Annotated[User, Depends(get_current_user)]) -> User:
    if not get_admin_service().is_privileged(user.email):
        raise NotAuthenticatedError("Admin access required")
    return user
