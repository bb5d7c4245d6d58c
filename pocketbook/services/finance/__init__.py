"""
Finance domain services
- categories: per-user labels
- ledger: income/expense transactions
- goals: savings goals derived from tagged income
- debts: debts and their installments
"""
