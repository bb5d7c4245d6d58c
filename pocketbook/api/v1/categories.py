from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel.ext.asyncio.session import AsyncSession

from pocketbook.services.auth.utils import get_current_user
from pocketbook.services.database.models.finance import TransactionKind
from pocketbook.services.database.models.user import User
from pocketbook.services.deps import get_session
from pocketbook.services.finance import categories

router = APIRouter(tags=["categories"])


class CategoryCreate(BaseModel):
    name: str
    kind: str  # "income" | "expense"
    color: str | None = None
    icon: str | None = None


class CategoryUpdate(BaseModel):
    name: str | None = None
    kind: str | None = None
    color: str | None = None
    icon: str | None = None


class CategoryOut(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    name: str
    kind: TransactionKind
    color: str
    icon: str
    created_at: datetime


@router.get("/categories", response_model=list[CategoryOut])
async def list_categories(
    db: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    """List the user's categories, seeding the defaults on first use."""
    return await categories.list_categories(db, user.id)


@router.post("/categories", response_model=CategoryOut, status_code=201)
async def create_category(
    payload: CategoryCreate,
    db: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    return await categories.create_category(db, user.id, payload.name, payload.kind, payload.color, payload.icon)


@router.get("/categories/{category_id}", response_model=CategoryOut)
async def get_category(
    category_id: int,
    db: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    return await categories.get_category(db, category_id, user.id)


@router.put("/categories/{category_id}", response_model=CategoryOut)
async def update_category(
    category_id: int,
    payload: CategoryUpdate,
    db: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    return await categories.update_category(db, category_id, user.id, payload.model_dump(exclude_unset=True))


@router.delete("/categories/{category_id}", status_code=204)
async def delete_category(
    category_id: int,
    db: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    await categories.delete_category(db, category_id, user.id)
    return None
