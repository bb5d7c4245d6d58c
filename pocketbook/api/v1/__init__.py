from pocketbook.api.v1.admin import router as admin_router
from pocketbook.api.v1.auth import router as auth_router
from pocketbook.api.v1.avatars import router as avatars_router
from pocketbook.api.v1.categories import router as categories_router
from pocketbook.api.v1.debts import router as debts_router
from pocketbook.api.v1.goals import router as goals_router
from pocketbook.api.v1.health import router as health_router
from pocketbook.api.v1.transactions import router as transactions_router

__all__ = [
    "admin_router",
    "auth_router",
    "avatars_router",
    "categories_router",
    "debts_router",
    "goals_router",
    "health_router",
    "transactions_router",
]
