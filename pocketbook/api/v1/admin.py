from fastapi import APIRouter, Depends
from fastapi_pagination import Page, paginate
from pydantic import BaseModel
from sqlmodel.ext.asyncio.session import AsyncSession

from pocketbook.api.v1.auth import ProfileOut, SignupPayload, UserOut, build_profile
from pocketbook.services.auth.utils import get_current_admin
from pocketbook.services.database.models.user import User
from pocketbook.services.database.models.user.crud import list_users
from pocketbook.services.deps import get_admin_service, get_auth_service, get_session

router = APIRouter(prefix="/admin", tags=["admin"])


class AdminStats(BaseModel):
    users: int
    new_users: int
    transactions: int
    income_volume: float
    expense_volume: float
    open_goals: int
    categories: int


@router.get("/stats", response_model=AdminStats)
async def stats(
    db: AsyncSession = Depends(get_session),
    _admin: User = Depends(get_current_admin),
):
    return AdminStats(**await get_admin_service().stats(db))


@router.get("/users", response_model=Page[ProfileOut])
async def users(
    db: AsyncSession = Depends(get_session),
    _admin: User = Depends(get_current_admin),
):
    return paginate([build_profile(user) for user in await list_users(db)])


@router.post("/users", response_model=UserOut, status_code=201)
async def create_user(
    payload: SignupPayload,
    db: AsyncSession = Depends(get_session),
    _admin: User = Depends(get_current_admin),
):
    """Seed an account on someone's behalf."""
    return await get_auth_service().create_user(db, payload.name, payload.email, payload.password)
