from sqlmodel import SQLModel

from pocketbook.services.database.models.user import User
from pocketbook.services.database.models.finance import Category, Transaction, Goal, Debt, Installment

__all__ = [
    "SQLModel",
    "User",
    "Category",
    "Transaction",
    "Goal",
    "Debt",
    "Installment",
]
