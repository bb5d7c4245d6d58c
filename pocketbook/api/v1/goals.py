from datetime import date as DateType, datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlmodel.ext.asyncio.session import AsyncSession

from pocketbook.api.v1.transactions import TransactionOut, to_out
from pocketbook.services.auth.utils import get_current_user
from pocketbook.services.database.models.user import User
from pocketbook.services.deps import get_session
from pocketbook.services.finance import goals
from pocketbook.services.finance.goals import GoalProgress, GoalStatus

router = APIRouter(prefix="/goals", tags=["goals"])


class GoalCreate(BaseModel):
    name: str
    target_amount: Decimal
    target_date: DateType | None = None


class GoalUpdate(BaseModel):
    name: str | None = None
    target_amount: Decimal | None = None
    target_date: DateType | None = None  # null clears the deadline


class ContributionCreate(BaseModel):
    amount: Decimal
    description: str | None = None


class GoalOut(BaseModel):
    id: int
    name: str
    target_amount: float
    target_date: DateType | None
    current_amount: float      # derived from contributions
    progress_percent: float
    status: GoalStatus
    created_at: datetime


class ContributionOut(BaseModel):
    id: int
    amount: float
    description: str
    occurred_at: datetime


class ContributionsOut(BaseModel):
    contributions: list[ContributionOut]
    total: float


class ContributeResult(BaseModel):
    transaction: TransactionOut
    goal: GoalOut


def goal_out(progress: GoalProgress) -> GoalOut:
    goal = progress.goal
    return GoalOut(
        id=goal.id,
        name=goal.name,
        target_amount=float(goal.target_amount),
        target_date=goal.target_date,
        current_amount=float(progress.total),
        progress_percent=progress.percent,
        status=progress.status(),
        created_at=goal.created_at,
    )


@router.post("", response_model=GoalOut, status_code=201)
async def create_goal(
    payload: GoalCreate,
    db: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    goal = await goals.create_goal(db, user.id, payload.name, payload.target_amount, payload.target_date)
    return goal_out(GoalProgress(goal=goal))


@router.get("", response_model=list[GoalOut])
async def list_goals(
    status: GoalStatus | None = Query(None),
    db: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    return [goal_out(progress) for progress in await goals.list_goals(db, user.id, status)]


@router.get("/{goal_id}", response_model=GoalOut)
async def get_goal(
    goal_id: int,
    db: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    return goal_out(await goals.goal_progress(db, goal_id, user.id))


@router.put("/{goal_id}", response_model=GoalOut)
async def update_goal(
    goal_id: int,
    payload: GoalUpdate,
    db: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    return goal_out(await goals.update_goal(db, goal_id, user.id, payload.model_dump(exclude_unset=True)))


@router.delete("/{goal_id}", status_code=204)
async def delete_goal(
    goal_id: int,
    db: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    await goals.delete_goal(db, goal_id, user.id)
    return None


@router.post("/{goal_id}/contribute", response_model=ContributeResult, status_code=201)
async def contribute(
    goal_id: int,
    payload: ContributionCreate,
    db: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    tx, progress = await goals.contribute(db, goal_id, user.id, payload.amount, payload.description)
    return ContributeResult(transaction=to_out(tx), goal=goal_out(progress))


@router.get("/{goal_id}/contributions", response_model=ContributionsOut)
async def list_contributions(
    goal_id: int,
    db: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    """Income transactions tagged with the goal, most recent first."""
    progress = await goals.goal_progress(db, goal_id, user.id)
    return ContributionsOut(
        contributions=[
            ContributionOut(id=tx.id, amount=float(tx.amount), description=tx.description, occurred_at=tx.occurred_at)
            for tx in progress.contributions
        ],
        total=float(progress.total),
    )
