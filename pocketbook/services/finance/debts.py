from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date as DateType, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from dateutil.relativedelta import relativedelta
from loguru import logger
from sqlalchemy import delete
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from pocketbook.exceptions import InvalidTransitionError, NotFoundError, NotOwnerError, ValidationError
from pocketbook.services.database.models.base import utcnow
from pocketbook.services.database.models.finance import Category, Debt, DebtStatus, Installment
from pocketbook.services.finance.ledger import CENTS, UNCATEGORIZED, parse_amount

# allowed status changes; QUITADA and PAGA are terminal
TRANSITIONS: dict[DebtStatus, frozenset[DebtStatus]] = {
    DebtStatus.PENDENTE: frozenset({DebtStatus.ATIVA, DebtStatus.VENCIDA}),
    DebtStatus.ATIVA: frozenset({DebtStatus.QUITADA, DebtStatus.PAGA, DebtStatus.VENCIDA}),
    DebtStatus.VENCIDA: frozenset({DebtStatus.ATIVA, DebtStatus.QUITADA, DebtStatus.PAGA}),
    DebtStatus.QUITADA: frozenset(),
    DebtStatus.PAGA: frozenset(),
}
SETTLED = frozenset({DebtStatus.QUITADA, DebtStatus.PAGA})
MAX_INSTALLMENTS = 600
# editing any of these rebuilds the unpaid part of the schedule
SCHEDULE_FIELDS = frozenset({"total_amount", "installment_count", "installment_amount", "first_due_date"})
UPCOMING_WINDOW = timedelta(days=30)
UPCOMING_LIMIT = 10


@dataclass
class DebtDetail:
    debt: Debt
    installments: list[Installment] = field(default_factory=list)

    @property
    def outstanding(self) -> Decimal:
        return sum((i.amount for i in self.installments if not i.paid), Decimal("0"))

    @property
    def paid_count(self) -> int:
        return sum(1 for i in self.installments if i.paid)

    @property
    def progress_percent(self) -> float:
        if not self.installments:
            return 0.0
        return round(self.paid_count / len(self.installments) * 100, 1)


@dataclass
class CategoryDebtTotals:
    name: str
    count: int = 0
    total: Decimal = Decimal("0")
    outstanding: Decimal = Decimal("0")


@dataclass
class DebtStats:
    total_debts: int = 0
    active: int = 0
    settled: int = 0
    total_amount: Decimal = Decimal("0")
    paid_amount: Decimal = Decimal("0")
    outstanding: Decimal = Decimal("0")
    overdue_installments: int = 0
    upcoming: list[tuple[Debt, Installment]] = field(default_factory=list)
    by_category: list[CategoryDebtTotals] = field(default_factory=list)

    @property
    def average_amount(self) -> Decimal:
        if not self.total_debts:
            return Decimal("0")
        return (self.total_amount / self.total_debts).quantize(CENTS, rounding=ROUND_HALF_UP)

    @property
    def settled_percent(self) -> int:
        if not self.total_debts:
            return 0
        return round(self.settled / self.total_debts * 100)


def can_transition(current: DebtStatus, target: DebtStatus) -> bool:
    return target in TRANSITIONS[current]


def build_schedule(
    first_due_date: DateType, count: int, amount: Decimal
) -> list[tuple[int, DateType, Decimal]]:
    """(number, due_date, amount) for ``count`` monthly installments starting at ``first_due_date``."""
    return [(n + 1, first_due_date + relativedelta(months=n), amount) for n in range(count)]


async def _installments_of(db: AsyncSession, debt_ids: list[int]) -> dict[int, list[Installment]]:
    grouped: dict[int, list[Installment]] = {debt_id: [] for debt_id in debt_ids}
    if not debt_ids:
        return grouped
    result = await db.execute(
        select(Installment).where(Installment.debt_id.in_(debt_ids)).order_by(Installment.debt_id, Installment.number)
    )
    for installment in result.scalars().all():
        grouped[installment.debt_id].append(installment)
    return grouped


def _positive(value, field_name: str) -> Decimal:
    amount = parse_amount(value)
    if amount <= 0:
        raise ValidationError(f"{field_name} must be greater than zero")
    return amount


def _check_count(count) -> int:
    if not count or count < 1 or count > MAX_INSTALLMENTS:
        raise ValidationError(f"installment_count must be between 1 and {MAX_INSTALLMENTS}")
    return count


async def _check_category(db: AsyncSession, owner_id: int, category_id: int) -> None:
    category = await db.get(Category, category_id)
    if not category or category.user_id != owner_id:
        raise ValidationError("Unknown category")


async def create_debt(
    db: AsyncSession,
    owner_id: int,
    name: Optional[str],
    total_amount,
    installment_count: int,
    first_due_date: DateType,
    installment_amount=None,
    category_id: Optional[int] = None,
    status: DebtStatus = DebtStatus.ATIVA,
) -> DebtDetail:
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required")
    total = _positive(total_amount, "total_amount")
    _check_count(installment_count)
    if first_due_date is None:
        raise ValidationError("first_due_date is required")
    if status in SETTLED:
        raise ValidationError("A new debt cannot start settled")

    if installment_amount is None:
        per_installment = (total / installment_count).quantize(CENTS, rounding=ROUND_HALF_UP)
    else:
        per_installment = _positive(installment_amount, "installment_amount")

    if category_id is not None:
        await _check_category(db, owner_id, category_id)

    debt = Debt(
        user_id=owner_id,
        name=name,
        total_amount=total,
        installment_count=installment_count,
        installment_amount=per_installment,
        first_due_date=first_due_date,
        category_id=category_id,
        status=status,
    )
    db.add(debt)
    await db.flush()

    installments = [
        Installment(debt_id=debt.id, number=number, due_date=due_date, amount=amount)
        for number, due_date, amount in build_schedule(first_due_date, installment_count, per_installment)
    ]
    db.add_all(installments)
    await db.commit()

    logger.info(f"Created debt {debt.id} with {installment_count} installments for user {owner_id}")
    return await get_debt(db, debt.id, owner_id)


async def _owned_debt(db: AsyncSession, debt_id: int, owner_id: int, lock: bool = False) -> Debt:
    query = select(Debt).where(Debt.id == debt_id)
    if lock:
        query = query.with_for_update()
    debt = (await db.execute(query)).scalar()
    if not debt:
        raise NotFoundError("Debt not found")
    if debt.user_id != owner_id:
        raise NotOwnerError("Debt not found")
    return debt


async def get_debt(db: AsyncSession, debt_id: int, owner_id: int) -> DebtDetail:
    debt = await _owned_debt(db, debt_id, owner_id)
    installments = await _installments_of(db, [debt.id])
    return DebtDetail(debt=debt, installments=installments[debt.id])


async def list_debts(
    db: AsyncSession, owner_id: int, statuses: Optional[Iterable[DebtStatus]] = None
) -> list[DebtDetail]:
    query = select(Debt).where(Debt.user_id == owner_id)
    statuses = list(statuses or [])
    if statuses:
        query = query.where(Debt.status.in_(statuses))
    query = query.order_by(Debt.created_at.desc(), Debt.id.desc())
    debts = list((await db.execute(query)).scalars().all())
    installments = await _installments_of(db, [debt.id for debt in debts])
    return [DebtDetail(debt=debt, installments=installments[debt.id]) for debt in debts]


async def outstanding_total(db: AsyncSession, owner_id: int) -> Decimal:
    details = await list_debts(db, owner_id)
    return sum((detail.outstanding for detail in details if detail.debt.status not in SETTLED), Decimal("0"))


async def change_status(db: AsyncSession, debt_id: int, owner_id: int, status: DebtStatus) -> DebtDetail:
    debt = await _owned_debt(db, debt_id, owner_id, lock=True)
    if not can_transition(debt.status, status):
        raise InvalidTransitionError(f"Cannot move debt from {debt.status.value} to {status.value}")
    previous = debt.status
    debt.status = status
    debt.updated_at = utcnow()
    db.add(debt)
    await db.commit()
    logger.info(f"Debt {debt_id} moved from {previous.value} to {status.value}")
    return await get_debt(db, debt_id, owner_id)


async def _locked_installment(db: AsyncSession, debt: Debt, installment_id: int) -> Installment:
    installment = (
        await db.execute(
            select(Installment)
            .where(Installment.id == installment_id, Installment.debt_id == debt.id)
            .with_for_update()
        )
    ).scalar()
    if not installment:
        raise NotFoundError("Installment not found")
    return installment


async def _settle_if_paid_off(db: AsyncSession, debt: Debt) -> None:
    """ATIVA or VENCIDA debts with nothing left unpaid become QUITADA."""
    await db.flush()
    remaining = (
        await db.execute(
            select(Installment.id).where(Installment.debt_id == debt.id, Installment.paid == False)  # noqa: E712
        )
    ).first()
    if remaining is None and debt.status in (DebtStatus.ATIVA, DebtStatus.VENCIDA):
        debt.status = DebtStatus.QUITADA
        debt.updated_at = utcnow()
        db.add(debt)
        logger.info(f"Debt {debt.id} settled")


async def pay_installment(db: AsyncSession, debt_id: int, installment_id: int, owner_id: int) -> DebtDetail:
    debt = await _owned_debt(db, debt_id, owner_id, lock=True)
    installment = await _locked_installment(db, debt, installment_id)
    if installment.paid:
        raise ValidationError("Installment already paid")

    installment.paid = True
    installment.paid_at = utcnow()
    db.add(installment)
    await _settle_if_paid_off(db, debt)

    await db.commit()
    return await get_debt(db, debt_id, owner_id)


async def _reschedule(db: AsyncSession, debt: Debt, changes: dict) -> None:
    count = _check_count(changes.get("installment_count", debt.installment_count))
    first_due_date = changes.get("first_due_date", debt.first_due_date)
    if first_due_date is None:
        raise ValidationError("first_due_date is required")

    installments = (await _installments_of(db, [debt.id]))[debt.id]
    paid_numbers = {i.number for i in installments if i.paid}
    if paid_numbers and max(paid_numbers) > count:
        raise ValidationError("installment_count cannot drop below an already paid installment")

    total = _positive(changes["total_amount"], "total_amount") if "total_amount" in changes else debt.total_amount
    if changes.get("installment_amount") is not None:
        per_installment = _positive(changes["installment_amount"], "installment_amount")
    elif "total_amount" in changes or "installment_count" in changes:
        per_installment = (total / count).quantize(CENTS, rounding=ROUND_HALF_UP)
    else:
        per_installment = debt.installment_amount

    # paid installments are history; only the unpaid part is regenerated
    for installment in installments:
        if not installment.paid:
            await db.delete(installment)
    db.add_all(
        Installment(debt_id=debt.id, number=number, due_date=due_date, amount=amount)
        for number, due_date, amount in build_schedule(first_due_date, count, per_installment)
        if number not in paid_numbers
    )

    debt.total_amount = total
    debt.installment_count = count
    debt.installment_amount = per_installment
    debt.first_due_date = first_due_date
    logger.info(f"Rescheduled debt {debt.id}: {count} installments of {per_installment}")


async def update_debt(db: AsyncSession, debt_id: int, owner_id: int, changes: dict) -> DebtDetail:
    """Partial edit of a debt.

    Changing the amounts, the installment count or the first due date rebuilds the unpaid
    installments and keeps the paid ones. Status changes follow the same transitions as
    :func:`change_status`.
    """
    debt = await _owned_debt(db, debt_id, owner_id, lock=True)

    if "name" in changes:
        name = (changes["name"] or "").strip()
        if not name:
            raise ValidationError("name is required")
        debt.name = name
    if "category_id" in changes:
        if changes["category_id"] is not None:
            await _check_category(db, owner_id, changes["category_id"])
        debt.category_id = changes["category_id"]

    if SCHEDULE_FIELDS & changes.keys():
        if debt.status in SETTLED:
            raise ValidationError("A settled debt cannot be rescheduled")
        await _reschedule(db, debt, changes)

    status = changes.get("status")
    if status is not None and status != debt.status:
        if not can_transition(debt.status, status):
            raise InvalidTransitionError(f"Cannot move debt from {debt.status.value} to {status.value}")
        debt.status = status

    debt.updated_at = utcnow()
    db.add(debt)
    await _settle_if_paid_off(db, debt)
    await db.commit()
    logger.info(f"Updated debt {debt_id} ({', '.join(sorted(changes))})")
    return await get_debt(db, debt_id, owner_id)


async def update_installment(
    db: AsyncSession, debt_id: int, installment_id: int, owner_id: int, changes: dict
) -> DebtDetail:
    """Edit due date, amount, notes or paid flag of one installment.

    A paid installment keeps its amount. Changing an amount recomputes the debt total
    from its installments.
    """
    debt = await _owned_debt(db, debt_id, owner_id, lock=True)
    installment = await _locked_installment(db, debt, installment_id)

    if "amount" in changes:
        if installment.paid:
            raise ValidationError("The amount of a paid installment cannot be changed")
        installment.amount = _positive(changes["amount"], "amount")
    if "due_date" in changes:
        if changes["due_date"] is None:
            raise ValidationError("due_date is required")
        installment.due_date = changes["due_date"]
    if "notes" in changes:
        installment.notes = (changes["notes"] or "").strip() or None
    if "paid" in changes and changes["paid"] is not None and changes["paid"] != installment.paid:
        if changes["paid"]:
            installment.paid = True
            installment.paid_at = utcnow()
        else:
            if debt.status in SETTLED:
                raise InvalidTransitionError("Installments of a settled debt cannot be reopened")
            installment.paid = False
            installment.paid_at = None
    db.add(installment)

    if "amount" in changes:
        await db.flush()
        installments = (await _installments_of(db, [debt.id]))[debt.id]
        debt.total_amount = sum((i.amount for i in installments), Decimal("0"))
        debt.updated_at = utcnow()
        db.add(debt)

    await _settle_if_paid_off(db, debt)
    await db.commit()
    logger.info(f"Updated installment {installment_id} of debt {debt_id}")
    return await get_debt(db, debt_id, owner_id)


async def delete_installment(db: AsyncSession, installment_id: int, owner_id: int) -> None:
    """Load the installment with its parent debt, authorize on the parent's owner, then delete.

    All three steps run in the session's single transaction; the row is locked where the
    database supports ``SELECT ... FOR UPDATE``.
    """
    row = (
        await db.execute(
            select(Installment, Debt)
            .join(Debt, Installment.debt_id == Debt.id)
            .where(Installment.id == installment_id)
            .with_for_update()
        )
    ).first()
    if not row:
        raise NotFoundError("Installment not found")
    installment, debt = row
    if debt.user_id != owner_id:
        raise NotOwnerError("Installment not found")

    await db.delete(installment)
    await db.commit()
    logger.info(f"Deleted installment {installment_id} of debt {debt.id}")


async def delete_debt(db: AsyncSession, debt_id: int, owner_id: int) -> None:
    debt = await _owned_debt(db, debt_id, owner_id, lock=True)
    await db.execute(delete(Installment).where(Installment.debt_id == debt.id))
    await db.delete(debt)
    await db.commit()
    logger.info(f"Deleted debt {debt_id}")


async def mark_overdue(db: AsyncSession, owner_id: int, today: Optional[DateType] = None) -> list[int]:
    """Move ATIVA debts with an unpaid installment due before ``today`` to VENCIDA.

    Nothing calls this on a timer; it runs only when a caller asks for it.
    """
    today = today or DateType.today()
    overdue_ids = (
        await db.execute(
            select(Debt.id)
            .join(Installment, Installment.debt_id == Debt.id)
            .where(
                Debt.user_id == owner_id,
                Debt.status == DebtStatus.ATIVA,
                Installment.paid == False,  # noqa: E712
                Installment.due_date < today,
            )
            .distinct()
        )
    ).scalars().all()
    if not overdue_ids:
        return []

    debts = (await db.execute(select(Debt).where(Debt.id.in_(overdue_ids)))).scalars().all()
    now = utcnow()
    for debt in debts:
        debt.status = DebtStatus.VENCIDA
        debt.updated_at = now
        db.add(debt)
    await db.commit()
    logger.info(f"Marked {len(debts)} debts as overdue for user {owner_id}")
    return sorted(overdue_ids)


async def debt_stats(db: AsyncSession, owner_id: int, today: Optional[DateType] = None) -> DebtStats:
    """Aggregate view over all of the owner's debts, computed on read.

    Overdue and upcoming installments only count for debts that are not settled;
    upcoming means due within the next 30 days, soonest first.
    """
    today = today or DateType.today()
    details = await list_debts(db, owner_id)

    category_ids = {detail.debt.category_id for detail in details if detail.debt.category_id is not None}
    names: dict[int, str] = {}
    if category_ids:
        rows = (await db.execute(select(Category.id, Category.name).where(Category.id.in_(category_ids)))).all()
        names = {category_id: name for category_id, name in rows}

    stats = DebtStats(total_debts=len(details))
    by_category: dict[str, CategoryDebtTotals] = {}
    upcoming: list[tuple[Debt, Installment]] = []
    for detail in details:
        debt = detail.debt
        settled = debt.status in SETTLED
        outstanding = Decimal("0") if settled else detail.outstanding

        if debt.status == DebtStatus.ATIVA:
            stats.active += 1
        if settled:
            stats.settled += 1
        stats.total_amount += debt.total_amount
        stats.paid_amount += sum((i.amount for i in detail.installments if i.paid), Decimal("0"))
        stats.outstanding += outstanding

        name = names.get(debt.category_id, UNCATEGORIZED)
        totals = by_category.setdefault(name, CategoryDebtTotals(name=name))
        totals.count += 1
        totals.total += debt.total_amount
        totals.outstanding += outstanding

        if settled:
            continue
        for installment in detail.installments:
            if installment.paid:
                continue
            if installment.due_date < today:
                stats.overdue_installments += 1
            elif installment.due_date <= today + UPCOMING_WINDOW:
                upcoming.append((debt, installment))

    upcoming.sort(key=lambda pair: (pair[1].due_date, pair[1].id))
    stats.upcoming = upcoming[:UPCOMING_LIMIT]
    stats.by_category = sorted(by_category.values(), key=lambda totals: totals.name)
    return stats
