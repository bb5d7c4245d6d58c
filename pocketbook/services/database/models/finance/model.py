from datetime import datetime
from datetime import date as date_type
from decimal import Decimal
from enum import Enum
from typing import Optional
from sqlmodel import Field, SQLModel

from pocketbook.services.database.models.base import Timestamp, utcnow


class TransactionKind(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class DebtStatus(str, Enum):
    PENDENTE = "PENDENTE"      # awaiting first installment / not yet started
    ATIVA = "ATIVA"            # being paid
    VENCIDA = "VENCIDA"        # an installment is past due and unpaid
    QUITADA = "QUITADA"        # settled through its installments
    PAGA = "PAGA"              # settled in full by the owner


class Category(SQLModel, table=True):
    """Label attached to transactions - names are unique per user"""
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    name: str = Field(max_length=50)
    kind: TransactionKind = Field(default=TransactionKind.EXPENSE)
    color: str = Field(default="#6B7280", max_length=20)
    icon: str = Field(default="📊", max_length=20)
    created_at: datetime = Field(default_factory=utcnow, sa_type=Timestamp)


class Transaction(SQLModel, table=True):
    """Ledger entry. amount is always a positive magnitude, kind carries the sign"""
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    category_id: Optional[int] = Field(default=None, foreign_key="category.id", ondelete="SET NULL", index=True)
    kind: TransactionKind = Field(index=True)
    amount: Decimal = Field(max_digits=14, decimal_places=2)
    description: str = Field(max_length=255)
    occurred_at: datetime = Field(default_factory=utcnow, sa_type=Timestamp, index=True)
    goal_id: Optional[int] = Field(default=None, foreign_key="goal.id", ondelete="SET NULL", index=True)
    installment_id: Optional[int] = Field(default=None, foreign_key="installment.id", ondelete="SET NULL")
    created_at: datetime = Field(default_factory=utcnow, sa_type=Timestamp)


class Goal(SQLModel, table=True):
    """Savings goal. Progress is derived from tagged income transactions, never stored"""
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    name: str = Field(max_length=100)
    target_amount: Decimal = Field(max_digits=14, decimal_places=2)
    target_date: Optional[date_type] = None
    created_at: datetime = Field(default_factory=utcnow, sa_type=Timestamp)


class Debt(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    name: str = Field(max_length=100)
    total_amount: Decimal = Field(max_digits=14, decimal_places=2)
    installment_count: int
    installment_amount: Decimal = Field(max_digits=14, decimal_places=2)
    first_due_date: date_type
    category_id: Optional[int] = Field(default=None, foreign_key="category.id", ondelete="SET NULL")
    status: DebtStatus = Field(default=DebtStatus.ATIVA, index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=Timestamp)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=Timestamp)


class Installment(SQLModel, table=True):
    """Scheduled payment of a debt. Ownership is inherited from the parent debt"""
    id: Optional[int] = Field(default=None, primary_key=True)
    debt_id: int = Field(foreign_key="debt.id", index=True, ondelete="CASCADE")
    number: int                                     # 1-based position in the schedule
    due_date: date_type = Field(index=True)
    amount: Decimal = Field(max_digits=14, decimal_places=2)
    paid: bool = Field(default=False)
    paid_at: Optional[datetime] = Field(default=None, sa_type=Timestamp)
    notes: Optional[str] = Field(default=None, max_length=255)
