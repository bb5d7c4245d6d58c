from pocketbook.services.base import Service
from pocketbook.services.settings.base import Settings


class SettingsService(Service):
    name = "settings_service"

    def __init__(self, settings: Settings):
        self.settings = settings

    @classmethod
    def initialize(cls) -> "SettingsService":
        return cls(Settings())
