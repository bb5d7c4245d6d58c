from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable, Optional

from sqlmodel import func, select
from sqlmodel.ext.asyncio.session import AsyncSession

from pocketbook.services.base import Service
from pocketbook.services.database.models.base import utcnow
from pocketbook.services.database.models.finance import Category, Transaction, TransactionKind
from pocketbook.services.database.models.user import User
from pocketbook.services.database.models.user.crud import count_users
from pocketbook.services.finance.goals import list_goals_for_all

ADMIN_HOME = "/admin"
USER_HOME = "/dashboard"
NEW_USER_WINDOW = timedelta(days=30)


class AdminService(Service):
    """Allowlist gate for privileged identities plus the aggregate admin views."""

    name = "admin_service"

    def __init__(self, admin_emails: Iterable[str]):
        self.admin_emails = frozenset(email.strip().lower() for email in admin_emails if email.strip())

    def is_privileged(self, email: Optional[str]) -> bool:
        if not email:
            return False
        return email.strip().lower() in self.admin_emails

    def initial_route(self, email: Optional[str]) -> str:
        return ADMIN_HOME if self.is_privileged(email) else USER_HOME

    async def stats(self, db: AsyncSession, now: Optional[datetime] = None) -> dict:
        now = now or utcnow()

        new_users = (
            await db.execute(select(func.count()).select_from(User).where(User.created_at >= now - NEW_USER_WINDOW))
        ).scalar() or 0

        volume_rows = (
            await db.execute(
                select(Transaction.kind, func.count(), func.coalesce(func.sum(Transaction.amount), 0)).group_by(
                    Transaction.kind
                )
            )
        ).all()
        counts = {TransactionKind(kind): (count, amount) for kind, count, amount in volume_rows}
        income_count, income_volume = counts.get(TransactionKind.INCOME, (0, 0))
        expense_count, expense_volume = counts.get(TransactionKind.EXPENSE, (0, 0))

        categories = (await db.execute(select(func.count()).select_from(Category))).scalar() or 0
        goals = await list_goals_for_all(db)
        open_goals = sum(1 for goal in goals if not goal.is_completed)

        return {
            "users": await count_users(db),
            "new_users": new_users,
            "transactions": income_count + expense_count,
            "income_volume": float(income_volume),
            "expense_volume": float(expense_volume),
            "open_goals": open_goals,
            "categories": categories,
        }
