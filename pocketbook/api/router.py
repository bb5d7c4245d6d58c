from fastapi import APIRouter

from pocketbook.api.v1 import (
    admin_router,
    auth_router,
    avatars_router,
    categories_router,
    debts_router,
    goals_router,
    health_router,
    transactions_router,
)

router_v1 = APIRouter(prefix="/v1")
router_v1.include_router(health_router)
router_v1.include_router(auth_router)
router_v1.include_router(categories_router)
router_v1.include_router(transactions_router)
router_v1.include_router(goals_router)
router_v1.include_router(debts_router)
router_v1.include_router(avatars_router)
router_v1.include_router(admin_router)

router = APIRouter(prefix="/api")

router.include_router(router_v1)
