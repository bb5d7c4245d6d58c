from pocketbook.services.auth.service import AuthService
from pocketbook.services.factory import ServiceFactory
from pocketbook.services.schema import ServiceType
from pocketbook.services.settings.service import SettingsService


class AuthServiceFactory(ServiceFactory):
    service_class = AuthService
    dependencies = [ServiceType.SETTINGS_SERVICE]

    def create(self, settings_service: SettingsService) -> AuthService:
        return AuthService(settings_service)
