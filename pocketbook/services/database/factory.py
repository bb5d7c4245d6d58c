from pocketbook.services.database.service import DatabaseService
from pocketbook.services.factory import ServiceFactory
from pocketbook.services.schema import ServiceType
from pocketbook.services.settings.service import SettingsService


class DatabaseServiceFactory(ServiceFactory):
    service_class = DatabaseService
    dependencies = [ServiceType.SETTINGS_SERVICE]

    def create(self, settings_service: SettingsService) -> DatabaseService:
        return DatabaseService(settings_service)
