from __future__ import annotations

from typing import TYPE_CHECKING, AsyncGenerator, Optional

from pocketbook.services.manager import service_manager
from pocketbook.services.schema import ServiceType

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

    from pocketbook.services.admin.service import AdminService
    from pocketbook.services.auth.service import AuthService
    from pocketbook.services.base import Service
    from pocketbook.services.database.service import DatabaseService
    from pocketbook.services.factory import ServiceFactory
    from pocketbook.services.settings.service import SettingsService
    from pocketbook.services.storage.service import StorageService


def get_service(service_type: ServiceType, default: Optional["ServiceFactory"] = None) -> "Service":
    return service_manager.get(service_type, default)


def get_settings_service() -> "SettingsService":
    return get_service(ServiceType.SETTINGS_SERVICE)  # type: ignore[return-value]


def get_db_service() -> "DatabaseService":
    return get_service(ServiceType.DATABASE_SERVICE)  # type: ignore[return-value]


def get_auth_service() -> "AuthService":
    return get_service(ServiceType.AUTH_SERVICE)  # type: ignore[return-value]


def get_admin_service() -> "AdminService":
    return get_service(ServiceType.ADMIN_SERVICE)  # type: ignore[return-value]


def get_storage_service() -> "StorageService":
    return get_service(ServiceType.STORAGE_SERVICE)  # type: ignore[return-value]


async def get_session() -> AsyncGenerator["AsyncSession", None]:
    async with get_db_service().with_session() as session:
        yield session
