"""
Debt API
- debts with generated monthly installments
- paying, editing and deleting installments
- debt statistics
- explicit status changes and overdue sweep
"""
from datetime import date as DateType, datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlmodel.ext.asyncio.session import AsyncSession

from pocketbook.services.auth.utils import get_current_user
from pocketbook.services.database.models.finance import DebtStatus
from pocketbook.services.database.models.user import User
from pocketbook.services.deps import get_session
from pocketbook.services.finance import debts
from pocketbook.services.finance.debts import DebtDetail

router = APIRouter(tags=["debts"])


# ============== Pydantic Schemas ==============

class DebtCreate(BaseModel):
    name: str
    total_amount: Decimal
    installment_count: int = Field(ge=1)
    first_due_date: DateType
    installment_amount: Decimal | None = None
    category_id: int | None = None
    status: DebtStatus = DebtStatus.ATIVA


class DebtUpdate(BaseModel):
    # only the fields sent are changed; schedule fields rebuild the unpaid installments
    name: str | None = None
    category_id: int | None = None
    status: DebtStatus | None = None
    total_amount: Decimal | None = None
    installment_count: int | None = Field(None, ge=1)
    installment_amount: Decimal | None = None
    first_due_date: DateType | None = None


class InstallmentUpdate(BaseModel):
    due_date: DateType | None = None
    amount: Decimal | None = None
    notes: str | None = None
    paid: bool | None = None


class StatusChange(BaseModel):
    status: DebtStatus


class InstallmentOut(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    number: int
    due_date: DateType
    amount: float
    paid: bool
    paid_at: datetime | None
    notes: str | None


class DebtOut(BaseModel):
    id: int
    name: str
    total_amount: float
    installment_count: int
    installment_amount: float
    first_due_date: DateType
    category_id: int | None
    status: DebtStatus
    outstanding: float          # sum of unpaid installments
    paid_count: int
    progress_percent: float
    installments: list[InstallmentOut]
    created_at: datetime


class OverdueResult(BaseModel):
    updated: list[int]


class UpcomingInstallmentOut(BaseModel):
    debt_id: int
    debt_name: str
    installment_id: int
    number: int
    due_date: DateType
    amount: float


class CategoryDebtOut(BaseModel):
    name: str
    count: int
    total: float
    outstanding: float


class DebtStatsOut(BaseModel):
    total_debts: int
    active: int
    settled: int
    total_amount: float
    paid_amount: float
    outstanding: float
    average_amount: float
    settled_percent: int
    overdue_installments: int
    upcoming: list[UpcomingInstallmentOut]
    by_category: list[CategoryDebtOut]


def debt_out(detail: DebtDetail) -> DebtOut:
    debt = detail.debt
    return DebtOut(
        id=debt.id,
        name=debt.name,
        total_amount=float(debt.total_amount),
        installment_count=debt.installment_count,
        installment_amount=float(debt.installment_amount),
        first_due_date=debt.first_due_date,
        category_id=debt.category_id,
        status=debt.status,
        outstanding=float(detail.outstanding),
        paid_count=detail.paid_count,
        progress_percent=detail.progress_percent,
        installments=[InstallmentOut.model_validate(i) for i in detail.installments],
        created_at=debt.created_at,
    )


# ============== Debt API ==============

@router.post("/debts", response_model=DebtOut, status_code=201)
async def create_debt(
    payload: DebtCreate,
    db: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    detail = await debts.create_debt(
        db,
        user.id,
        payload.name,
        payload.total_amount,
        payload.installment_count,
        payload.first_due_date,
        installment_amount=payload.installment_amount,
        category_id=payload.category_id,
        status=payload.status,
    )
    return debt_out(detail)


@router.get("/debts", response_model=list[DebtOut])
async def list_debts(
    status: list[DebtStatus] | None = Query(None),
    db: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    """List debts, newest first. ``status`` accepts several values (?status=ATIVA,VENCIDA)."""
    return [debt_out(detail) for detail in await debts.list_debts(db, user.id, status)]


@router.post("/debts/overdue-check", response_model=OverdueResult)
async def overdue_check(
    db: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    return OverdueResult(updated=await debts.mark_overdue(db, user.id))


@router.get("/debts/stats", response_model=DebtStatsOut)
async def debt_stats(
    db: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    """Totals, overdue count and the next installments due across all debts."""
    stats = await debts.debt_stats(db, user.id)
    return DebtStatsOut(
        total_debts=stats.total_debts,
        active=stats.active,
        settled=stats.settled,
        total_amount=float(stats.total_amount),
        paid_amount=float(stats.paid_amount),
        outstanding=float(stats.outstanding),
        average_amount=float(stats.average_amount),
        settled_percent=stats.settled_percent,
        overdue_installments=stats.overdue_installments,
        upcoming=[
            UpcomingInstallmentOut(
                debt_id=debt.id,
                debt_name=debt.name,
                installment_id=installment.id,
                number=installment.number,
                due_date=installment.due_date,
                amount=float(installment.amount),
            )
            for debt, installment in stats.upcoming
        ],
        by_category=[
            CategoryDebtOut(
                name=totals.name,
                count=totals.count,
                total=float(totals.total),
                outstanding=float(totals.outstanding),
            )
            for totals in stats.by_category
        ],
    )


@router.get("/debts/{debt_id}", response_model=DebtOut)
async def get_debt(
    debt_id: int,
    db: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    return debt_out(await debts.get_debt(db, debt_id, user.id))


@router.put("/debts/{debt_id}", response_model=DebtOut)
async def update_debt(
    debt_id: int,
    payload: DebtUpdate,
    db: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    return debt_out(await debts.update_debt(db, debt_id, user.id, payload.model_dump(exclude_unset=True)))


@router.put("/debts/{debt_id}/status", response_model=DebtOut)
async def change_status(
    debt_id: int,
    payload: StatusChange,
    db: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    return debt_out(await debts.change_status(db, debt_id, user.id, payload.status))


@router.post("/debts/{debt_id}/installments/{installment_id}/pay", response_model=DebtOut)
async def pay_installment(
    debt_id: int,
    installment_id: int,
    db: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    return debt_out(await debts.pay_installment(db, debt_id, installment_id, user.id))


@router.put("/debts/{debt_id}/installments/{installment_id}", response_model=DebtOut)
async def update_installment(
    debt_id: int,
    installment_id: int,
    payload: InstallmentUpdate,
    db: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    """Edit one installment. A paid installment cannot change its amount."""
    changes = payload.model_dump(exclude_unset=True)
    return debt_out(await debts.update_installment(db, debt_id, installment_id, user.id, changes))


@router.delete("/debts/{debt_id}", status_code=204)
async def delete_debt(
    debt_id: int,
    db: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    await debts.delete_debt(db, debt_id, user.id)
    return None


# ============== Installment API ==============

@router.delete("/installments")
async def delete_installment(
    installment_id: int = Query(..., alias="id"),
    db: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    """Delete one installment. 404 when it does not exist or its debt belongs to someone else."""
    await debts.delete_installment(db, installment_id, user.id)
    return {"message": "Installment deleted"}
