from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date as DateType
from decimal import Decimal
from enum import Enum
from typing import Optional

from loguru import logger
from sqlmodel import func, select
from sqlmodel.ext.asyncio.session import AsyncSession

from pocketbook.exceptions import NotFoundError, NotOwnerError, ValidationError
from pocketbook.services.database.models.finance import Goal, Transaction, TransactionKind
from pocketbook.services.finance.ledger import parse_amount, record_transaction


class GoalStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    OVERDUE = "overdue"


@dataclass
class GoalProgress:
    goal: Goal
    total: Decimal = Decimal("0")
    contributions: list[Transaction] = field(default_factory=list)

    @property
    def is_completed(self) -> bool:
        return self.total >= self.goal.target_amount

    @property
    def percent(self) -> float:
        if self.goal.target_amount <= 0:
            return 0.0
        return round(float(self.total / self.goal.target_amount * 100), 1)

    def status(self, today: Optional[DateType] = None) -> GoalStatus:
        today = today or DateType.today()
        if self.is_completed:
            return GoalStatus.COMPLETED
        if self.goal.target_date and self.goal.target_date < today:
            return GoalStatus.OVERDUE
        return GoalStatus.ACTIVE


def _contribution_filter(query, owner_id: int):
    return query.where(Transaction.user_id == owner_id, Transaction.kind == TransactionKind.INCOME)


async def _totals_by_goal(db: AsyncSession, goals: list[Goal]) -> dict[int, Decimal]:
    if not goals:
        return {}
    totals: dict[int, Decimal] = {}
    # contributions only count when the transaction owner matches the goal owner
    for owner_id in {goal.user_id for goal in goals}:
        query = _contribution_filter(
            select(Transaction.goal_id, func.sum(Transaction.amount)), owner_id
        ).where(Transaction.goal_id.in_([goal.id for goal in goals if goal.user_id == owner_id]))
        rows = (await db.execute(query.group_by(Transaction.goal_id))).all()
        totals.update({goal_id: Decimal(str(total)) for goal_id, total in rows if total is not None})
    return totals


async def create_goal(
    db: AsyncSession,
    owner_id: int,
    name: Optional[str],
    target_amount,
    target_date: Optional[DateType] = None,
    today: Optional[DateType] = None,
) -> Goal:
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required")
    target = parse_amount(target_amount)
    if target <= 0:
        raise ValidationError("target_amount must be greater than zero")
    if target_date and target_date <= (today or DateType.today()):
        raise ValidationError("target_date must be in the future")

    goal = Goal(user_id=owner_id, name=name, target_amount=target, target_date=target_date)
    db.add(goal)
    await db.commit()
    await db.refresh(goal)
    logger.debug(f"Created goal {goal.id} for user {owner_id}")
    return goal


async def get_goal(db: AsyncSession, goal_id: int, owner_id: int) -> Goal:
    goal = await db.get(Goal, goal_id)
    if not goal:
        raise NotFoundError("Goal not found")
    if goal.user_id != owner_id:
        raise NotOwnerError("Goal not found")
    return goal


async def update_goal(
    db: AsyncSession,
    goal_id: int,
    owner_id: int,
    changes: dict,
    today: Optional[DateType] = None,
) -> GoalProgress:
    """Edit name, target amount or target date. Progress stays derived from contributions."""
    goal = await get_goal(db, goal_id, owner_id)

    if "name" in changes:
        name = (changes["name"] or "").strip()
        if not name:
            raise ValidationError("name is required")
        goal.name = name
    if "target_amount" in changes:
        target = parse_amount(changes["target_amount"])
        if target <= 0:
            raise ValidationError("target_amount must be greater than zero")
        goal.target_amount = target
    if "target_date" in changes:
        target_date = changes["target_date"]
        if target_date and target_date <= (today or DateType.today()):
            raise ValidationError("target_date must be in the future")
        goal.target_date = target_date

    db.add(goal)
    await db.commit()
    logger.debug(f"Updated goal {goal_id} for user {owner_id}")
    return await goal_progress(db, goal_id, owner_id)


async def goal_progress(db: AsyncSession, goal_id: int, owner_id: int) -> GoalProgress:
    """Contributions to a goal, most recent first, and their sum. Recomputed on every call."""
    goal = await get_goal(db, goal_id, owner_id)
    query = _contribution_filter(select(Transaction), owner_id).where(Transaction.goal_id == goal.id)
    query = query.order_by(Transaction.occurred_at.desc(), Transaction.id.desc())
    contributions = list((await db.execute(query)).scalars().all())
    total = sum((tx.amount for tx in contributions), Decimal("0"))
    return GoalProgress(goal=goal, total=total, contributions=contributions)


async def list_goals(
    db: AsyncSession,
    owner_id: int,
    status: Optional[GoalStatus] = None,
    today: Optional[DateType] = None,
) -> list[GoalProgress]:
    result = await db.execute(
        select(Goal).where(Goal.user_id == owner_id).order_by(Goal.created_at.desc(), Goal.id.desc())
    )
    goals = list(result.scalars().all())
    totals = await _totals_by_goal(db, goals)
    progress = [GoalProgress(goal=goal, total=totals.get(goal.id, Decimal("0"))) for goal in goals]
    if status:
        progress = [item for item in progress if item.status(today) == status]
    return progress


async def list_goals_for_all(db: AsyncSession) -> list[GoalProgress]:
    goals = list((await db.execute(select(Goal))).scalars().all())
    totals = await _totals_by_goal(db, goals)
    return [GoalProgress(goal=goal, total=totals.get(goal.id, Decimal("0"))) for goal in goals]


async def contribute(
    db: AsyncSession,
    goal_id: int,
    owner_id: int,
    amount,
    description: Optional[str] = None,
) -> tuple[Transaction, GoalProgress]:
    progress = await goal_progress(db, goal_id, owner_id)
    if progress.is_completed:
        raise ValidationError("This goal is already completed")

    description = (description or "").strip() or f"Contribution to goal: {progress.goal.name}"
    tx = await record_transaction(
        db, owner_id, TransactionKind.INCOME, amount, description, goal_id=progress.goal.id
    )
    logger.info(f"User {owner_id} contributed {tx.amount} to goal {goal_id}")
    return tx, await goal_progress(db, goal_id, owner_id)


async def delete_goal(db: AsyncSession, goal_id: int, owner_id: int) -> None:
    goal = await get_goal(db, goal_id, owner_id)
    await db.delete(goal)
    await db.commit()
