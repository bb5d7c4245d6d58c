from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from loguru import logger

from pocketbook.services.schema import ServiceType

if TYPE_CHECKING:
    from pocketbook.services.base import Service
    from pocketbook.services.factory import ServiceFactory


class ServiceManager:
    """Lazily builds services from their factories and keeps one instance of each."""

    def __init__(self) -> None:
        # both keyed by ServiceType.value
        self.services: dict[str, Service] = {}
        self.factories: dict[str, ServiceFactory] = {}

    def register_factory(self, service_type: ServiceType, factory: "ServiceFactory") -> None:
        self.factories[service_type.value] = factory

    def register_default_factories(self) -> None:
        from pocketbook.services.admin.factory import AdminServiceFactory
        from pocketbook.services.auth.factory import AuthServiceFactory
        from pocketbook.services.database.factory import DatabaseServiceFactory
        from pocketbook.services.settings.factory import SettingsServiceFactory
        from pocketbook.services.storage.factory import StorageServiceFactory

        self.register_factory(ServiceType.SETTINGS_SERVICE, SettingsServiceFactory())
        self.register_factory(ServiceType.DATABASE_SERVICE, DatabaseServiceFactory())
        self.register_factory(ServiceType.AUTH_SERVICE, AuthServiceFactory())
        self.register_factory(ServiceType.ADMIN_SERVICE, AdminServiceFactory())
        self.register_factory(ServiceType.STORAGE_SERVICE, StorageServiceFactory())

    def get(self, service_type: ServiceType, default: Optional["ServiceFactory"] = None) -> "Service":
        if not self.factories:
            self.register_default_factories()
        if service_type.value not in self.services:
            self._create_service(service_type, default)
        return self.services[service_type.value]

    def _create_service(self, service_type: ServiceType, default: Optional["ServiceFactory"] = None) -> None:
        factory = self.factories.get(service_type.value) or default
        if factory is None:
            raise ValueError(f"No factory registered for {service_type.value}")
        self.factories.setdefault(service_type.value, factory)

        dependencies = {dep.value: self.get(dep) for dep in factory.dependencies}
        logger.debug(f"Creating service {service_type.value}")
        service = factory.create(**dependencies)
        service.set_ready()
        self.services[service_type.value] = service

    async def teardown(self) -> None:
        # dependents are torn down before what they depend on
        for name, service in reversed(list(self.services.items())):
            try:
                await service.teardown()
            except Exception as exc:
                logger.exception(f"Error tearing down {name}: {exc}")
        self.services.clear()


service_manager = ServiceManager()
