from pocketbook.services.factory import ServiceFactory
from pocketbook.services.schema import ServiceType
from pocketbook.services.settings.service import SettingsService
from pocketbook.services.storage.service import StorageService


class StorageServiceFactory(ServiceFactory):
    service_class = StorageService
    dependencies = [ServiceType.SETTINGS_SERVICE]

    def create(self, settings_service: SettingsService) -> StorageService:
        return StorageService(settings_service)
