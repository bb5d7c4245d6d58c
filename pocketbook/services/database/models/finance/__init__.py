from pocketbook.services.database.models.finance.model import (
    Category,
    Debt,
    DebtStatus,
    Goal,
    Installment,
    Transaction,
    TransactionKind,
)

__all__ = [
    "Category",
    "Debt",
    "DebtStatus",
    "Goal",
    "Installment",
    "Transaction",
    "TransactionKind",
]
