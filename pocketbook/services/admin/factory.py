from pocketbook.services.admin.service import AdminService
from pocketbook.services.factory import ServiceFactory
from pocketbook.services.schema import ServiceType
from pocketbook.services.settings.service import SettingsService


class AdminServiceFactory(ServiceFactory):
    service_class = AdminService
    dependencies = [ServiceType.SETTINGS_SERVICE]

    def create(self, settings_service: SettingsService) -> AdminService:
        return AdminService(settings_service.settings.admin_email_set)
