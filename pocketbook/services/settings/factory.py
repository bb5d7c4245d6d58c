from pocketbook.services.factory import ServiceFactory
from pocketbook.services.settings.service import SettingsService


class SettingsServiceFactory(ServiceFactory):
    service_class = SettingsService

    def create(self) -> SettingsService:
        return SettingsService.initialize()
