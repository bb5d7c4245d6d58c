from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date as DateType, datetime, time, timezone
from decimal import Decimal, InvalidOperation
from typing import Optional

from dateutil.relativedelta import relativedelta
from loguru import logger
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from pocketbook.exceptions import NotFoundError, NotOwnerError, ValidationError
from pocketbook.services.database.models.base import as_utc, utcnow
from pocketbook.services.database.models.finance import (
    Category,
    Debt,
    Goal,
    Installment,
    Transaction,
    TransactionKind,
)

ADJUSTMENT_PREFIX = "[ADJUSTMENT] "
UNCATEGORIZED = "uncategorized"
CENTS = Decimal("0.01")
EDITABLE_TRANSACTION_FIELDS = frozenset(
    {"kind", "amount", "description", "occurred_at", "category_id", "goal_id", "installment_id"}
)


@dataclass
class MonthlySummary:
    year_month: str
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")
    by_category: dict[str, Decimal] = field(default_factory=dict)

    @property
    def balance(self) -> Decimal:
        return self.income - self.expense


def parse_kind(kind) -> TransactionKind:
    try:
        return TransactionKind(kind)
    except ValueError:
        raise ValidationError("kind must be 'income' or 'expense'") from None


def parse_amount(amount) -> Decimal:
    if amount is None or isinstance(amount, bool):
        raise ValidationError("amount is required")
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise ValidationError("amount must be a number") from None
    if not value.is_finite():
        raise ValidationError("amount must be a number")
    return value.quantize(CENTS)


def _positive_amount(amount) -> Decimal:
    value = parse_amount(amount)
    if value <= 0:
        raise ValidationError("amount must be greater than zero")
    return value


def _description(description: Optional[str]) -> str:
    description = (description or "").strip()
    if not description:
        raise ValidationError("description is required")
    return description


async def _check_references(
    db: AsyncSession,
    owner_id: int,
    category_id: Optional[int],
    goal_id: Optional[int],
    installment_id: Optional[int],
) -> None:
    if category_id is not None:
        category = await db.get(Category, category_id)
        if not category or category.user_id != owner_id:
            raise ValidationError("Unknown category")
    if goal_id is not None:
        goal = await db.get(Goal, goal_id)
        if not goal or goal.user_id != owner_id:
            raise ValidationError("Unknown goal")
    if installment_id is not None:
        row = (
            await db.execute(
                select(Installment, Debt).join(Debt, Installment.debt_id == Debt.id).where(Installment.id == installment_id)
            )
        ).first()
        if not row or row[1].user_id != owner_id:
            raise ValidationError("Unknown installment")


async def record_transaction(
    db: AsyncSession,
    owner_id: int,
    kind,
    amount,
    description: Optional[str],
    occurred_at: Optional[datetime] = None,
    category_id: Optional[int] = None,
    goal_id: Optional[int] = None,
    installment_id: Optional[int] = None,
) -> Transaction:
    """Validate and persist a single ledger entry. No other row is touched."""
    kind = parse_kind(kind)
    value = _positive_amount(amount)
    description = _description(description)

    await _check_references(db, owner_id, category_id, goal_id, installment_id)

    tx = Transaction(
        user_id=owner_id,
        kind=kind,
        amount=value,
        description=description,
        occurred_at=as_utc(occurred_at) if occurred_at else utcnow(),
        category_id=category_id,
        goal_id=goal_id,
        installment_id=installment_id,
    )
    db.add(tx)
    await db.commit()
    await db.refresh(tx)
    logger.debug(f"Recorded {kind.value} transaction {tx.id} for user {owner_id}")
    return tx


async def record_adjustment(db: AsyncSession, owner_id: int, kind, amount, description: Optional[str]) -> Transaction:
    """Balance correction: the magnitude of ``amount`` is recorded, tagged in the description."""
    value = abs(parse_amount(amount))
    return await record_transaction(db, owner_id, kind, value, ADJUSTMENT_PREFIX + _description(description))


async def get_transaction(db: AsyncSession, tx_id: int, owner_id: int) -> Transaction:
    tx = await db.get(Transaction, tx_id)
    if not tx:
        raise NotFoundError("Transaction not found")
    if tx.user_id != owner_id:
        raise NotOwnerError("Transaction not found")
    return tx


async def update_transaction(db: AsyncSession, tx_id: int, owner_id: int, changes: dict) -> Transaction:
    """Apply a partial edit; only the keys present in ``changes`` are touched.

    A ``None`` reference (category, goal, installment) unlinks it.
    """
    tx = await get_transaction(db, tx_id, owner_id)
    unknown = set(changes) - EDITABLE_TRANSACTION_FIELDS
    if unknown:
        raise ValidationError(f"Cannot edit {', '.join(sorted(unknown))}")

    if "kind" in changes:
        tx.kind = parse_kind(changes["kind"])
    if "amount" in changes:
        tx.amount = _positive_amount(changes["amount"])
    if "description" in changes:
        tx.description = _description(changes["description"])
    if "occurred_at" in changes:
        if changes["occurred_at"] is None:
            raise ValidationError("occurred_at cannot be empty")
        tx.occurred_at = as_utc(changes["occurred_at"])

    await _check_references(
        db, owner_id, changes.get("category_id"), changes.get("goal_id"), changes.get("installment_id")
    )
    for key in ("category_id", "goal_id", "installment_id"):
        if key in changes:
            setattr(tx, key, changes[key])

    db.add(tx)
    await db.commit()
    await db.refresh(tx)
    logger.debug(f"Updated transaction {tx_id} ({', '.join(sorted(changes))}) for user {owner_id}")
    return tx


async def list_transactions(
    db: AsyncSession,
    owner_id: int,
    start_date: Optional[DateType] = None,
    end_date: Optional[DateType] = None,
    kind: Optional[TransactionKind] = None,
    category_id: Optional[int] = None,
    goal_id: Optional[int] = None,
    limit: int = 100,
    offset: int = 0,
) -> list[Transaction]:
    query = select(Transaction).where(Transaction.user_id == owner_id)

    if start_date:
        query = query.where(Transaction.occurred_at >= datetime.combine(start_date, time.min, tzinfo=timezone.utc))
    if end_date:
        query = query.where(Transaction.occurred_at <= datetime.combine(end_date, time.max, tzinfo=timezone.utc))
    if kind:
        query = query.where(Transaction.kind == kind)
    if category_id is not None:
        query = query.where(Transaction.category_id == category_id)
    if goal_id is not None:
        query = query.where(Transaction.goal_id == goal_id)

    query = query.order_by(Transaction.occurred_at.desc(), Transaction.created_at.desc(), Transaction.id.desc())
    query = query.offset(offset).limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())


async def delete_transaction(db: AsyncSession, tx_id: int, owner_id: int) -> None:
    tx = await get_transaction(db, tx_id, owner_id)
    await db.delete(tx)
    await db.commit()
    logger.debug(f"Deleted transaction {tx_id} for user {owner_id}")


async def monthly_summary(db: AsyncSession, owner_id: int, year: int, month: int) -> MonthlySummary:
    try:
        month_start = datetime(year, month, 1, tzinfo=timezone.utc)
    except ValueError:
        raise ValidationError("Invalid month") from None
    month_end = month_start + relativedelta(months=1)

    rows = (
        await db.execute(
            select(Transaction, Category.name)
            .join(Category, Transaction.category_id == Category.id, isouter=True)
            .where(
                Transaction.user_id == owner_id,
                Transaction.occurred_at >= month_start,
                Transaction.occurred_at < month_end,
            )
        )
    ).all()

    summary = MonthlySummary(year_month=month_start.strftime("%Y-%m"))
    for tx, category_name in rows:
        if tx.kind == TransactionKind.INCOME:
            summary.income += tx.amount
        else:
            summary.expense += tx.amount
            key = category_name or UNCATEGORIZED
            summary.by_category[key] = summary.by_category.get(key, Decimal("0")) + tx.amount
    return summary
