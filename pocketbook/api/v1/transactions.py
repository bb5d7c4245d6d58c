"""
Ledger API
- income/expense CRUD and edits
- balance adjustments
- monthly dashboard
"""
from datetime import date as DateType, datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlmodel.ext.asyncio.session import AsyncSession

from pocketbook.services.auth.utils import get_current_user
from pocketbook.services.database.models.finance import Transaction, TransactionKind
from pocketbook.services.database.models.user import User
from pocketbook.services.deps import get_session
from pocketbook.services.finance import debts, ledger

router = APIRouter(tags=["transactions"])


# ============== Pydantic Schemas ==============

class TransactionCreate(BaseModel):
    kind: str  # "income" | "expense"
    amount: Decimal
    description: str
    occurred_at: datetime | None = None
    category_id: int | None = None
    goal_id: int | None = None
    installment_id: int | None = None


class TransactionUpdate(BaseModel):
    # every field optional; only the ones sent are changed
    kind: str | None = None
    amount: Decimal | None = None
    description: str | None = None
    occurred_at: datetime | None = None
    category_id: int | None = None
    goal_id: int | None = None
    installment_id: int | None = None


class AdjustmentCreate(BaseModel):
    kind: str
    amount: Decimal
    description: str


class TransactionOut(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    kind: TransactionKind
    amount: float
    description: str
    occurred_at: datetime
    category_id: int | None
    goal_id: int | None
    installment_id: int | None
    created_at: datetime


class DashboardOut(BaseModel):
    year_month: str
    income: float
    expense: float
    balance: float
    by_category: dict[str, float]
    outstanding_debt: float


def to_out(tx: Transaction) -> TransactionOut:
    return TransactionOut.model_validate(tx)


# ============== Transaction API ==============

@router.post("/transactions", response_model=TransactionOut, status_code=201)
async def create_transaction(
    payload: TransactionCreate,
    db: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    """Record an income or expense entry."""
    tx = await ledger.record_transaction(
        db,
        user.id,
        payload.kind,
        payload.amount,
        payload.description,
        occurred_at=payload.occurred_at,
        category_id=payload.category_id,
        goal_id=payload.goal_id,
        installment_id=payload.installment_id,
    )
    return to_out(tx)


@router.post("/transactions/adjustment", response_model=TransactionOut, status_code=201)
async def create_adjustment(
    payload: AdjustmentCreate,
    db: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    tx = await ledger.record_adjustment(db, user.id, payload.kind, payload.amount, payload.description)
    return to_out(tx)


@router.get("/transactions", response_model=list[TransactionOut])
async def list_transactions(
    start_date: DateType | None = Query(None),
    end_date: DateType | None = Query(None),
    kind: TransactionKind | None = Query(None),
    category_id: int | None = Query(None),
    goal_id: int | None = Query(None),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    transactions = await ledger.list_transactions(
        db,
        user.id,
        start_date=start_date,
        end_date=end_date,
        kind=kind,
        category_id=category_id,
        goal_id=goal_id,
        limit=limit,
        offset=offset,
    )
    return [to_out(tx) for tx in transactions]


@router.get("/transactions/{tx_id}", response_model=TransactionOut)
async def get_transaction(
    tx_id: int,
    db: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    return to_out(await ledger.get_transaction(db, tx_id, user.id))


@router.put("/transactions/{tx_id}", response_model=TransactionOut)
async def update_transaction(
    tx_id: int,
    payload: TransactionUpdate,
    db: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    """Partial edit. Sending ``category_id: null`` unlinks the category."""
    tx = await ledger.update_transaction(db, tx_id, user.id, payload.model_dump(exclude_unset=True))
    return to_out(tx)


@router.delete("/transactions/{tx_id}", status_code=204)
async def delete_transaction(
    tx_id: int,
    db: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    """Delete a ledger entry; 404 when missing or owned by someone else."""
    await ledger.delete_transaction(db, tx_id, user.id)
    return None


# ============== Dashboard API ==============

@router.get("/dashboard", response_model=DashboardOut)
async def get_dashboard(
    year: int | None = Query(None, ge=1900, le=9999),
    month: int | None = Query(None, ge=1, le=12),
    db: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    """Month totals (current month by default) and what is still owed."""
    today = DateType.today()
    summary = await ledger.monthly_summary(db, user.id, year or today.year, month or today.month)
    outstanding = await debts.outstanding_total(db, user.id)
    return DashboardOut(
        year_month=summary.year_month,
        income=float(summary.income),
        expense=float(summary.expense),
        balance=float(summary.balance),
        by_category={name: float(total) for name, total in summary.by_category.items()},
        outstanding_debt=float(outstanding),
    )
