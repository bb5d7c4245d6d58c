from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel.ext.asyncio.session import AsyncSession

from pocketbook.services.auth.utils import get_current_user
from pocketbook.services.database.models.user import User
from pocketbook.services.deps import get_admin_service, get_auth_service, get_session

router = APIRouter(tags=["auth"])


class SignupPayload(BaseModel):
    name: str
    email: str
    password: str


class LoginPayload(BaseModel):
    email: str
    password: str


class UserOut(BaseModel):  # public view of a user
    model_config = {"from_attributes": True}

    id: int
    name: str
    email: str


class ProfileOut(UserOut):
    avatar_file: str | None
    created_at: datetime
    is_admin: bool
    home: str  # where the client should land after login


class LoginResult(BaseModel):
    access: str
    refresh: str
    user: UserOut
    home: str


class RefreshPayload(BaseModel):
    refresh: str


class AccessOnly(BaseModel):
    access: str


class RenamePayload(BaseModel):
    name: str


def build_profile(user: User) -> ProfileOut:
    admin = get_admin_service()
    return ProfileOut(
        id=user.id,
        name=user.name,
        email=user.email,
        avatar_file=user.avatar_file,
        created_at=user.created_at,
        is_admin=admin.is_privileged(user.email),
        home=admin.initial_route(user.email),
    )


@router.post("/signup", response_model=UserOut, status_code=201)
async def signup(payload: SignupPayload, db: AsyncSession = Depends(get_session)):
    """Create an account. Duplicate email or short password -> 400."""
    user = await get_auth_service().create_user(db, payload.name, payload.email, payload.password)
    return user


@router.post("/login", response_model=LoginResult)
async def login(payload: LoginPayload, db: AsyncSession = Depends(get_session)):
    """Unknown email -> 404, wrong password -> 401."""
    auth = get_auth_service()
    user = await auth.verify(db, payload.email, payload.password)
    tokens = auth.issue_tokens(user.id)
    return LoginResult(
        access=tokens["access"],
        refresh=tokens["refresh"],
        user=UserOut.model_validate(user),
        home=get_admin_service().initial_route(user.email),
    )


@router.post("/token/refresh", response_model=AccessOnly)
async def refresh_token(payload: RefreshPayload):
    return AccessOnly(access=get_auth_service().refresh_access(payload.refresh))


@router.post("/logout", status_code=204)
async def logout():
    # tokens are stateless; the client drops them
    return None


@router.get("/me", response_model=ProfileOut)
async def me(user: User = Depends(get_current_user)):
    return build_profile(user)


@router.patch("/me", response_model=ProfileOut)
async def rename_me(
    payload: RenamePayload,
    db: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    user = await get_auth_service().rename(db, user, payload.name)
    return build_profile(user)
