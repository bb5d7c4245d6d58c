from enum import Enum


class ServiceType(str, Enum):
    """Names under which services are registered in the service manager."""

    SETTINGS_SERVICE = "settings_service"
    DATABASE_SERVICE = "database_service"
    AUTH_SERVICE = "auth_service"
    ADMIN_SERVICE = "admin_service"
    STORAGE_SERVICE = "storage_service"
