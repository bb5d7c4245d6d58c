import pytest

from pocketbook.services.deps import get_auth_service, get_db_service, get_settings_service
from pocketbook.services.factory import ServiceFactory
from pocketbook.services.manager import service_manager
from pocketbook.services.schema import ServiceType
from pocketbook.services.settings.base import Settings
from pocketbook.services.settings.factory import SettingsServiceFactory


def test_admin_emails_are_split_and_normalized():
    settings = Settings(ADMIN_EMAILS="One@Example.com, two@example.com ,,")
    assert settings.admin_email_set == frozenset({"one@example.com", "two@example.com"})
    assert Settings(ADMIN_EMAILS="").admin_email_set == frozenset()


def test_settings_read_from_environment(env):
    settings = get_settings_service().settings
    assert settings.environment == "test"
    assert settings.jwt_secret.startswith("test-secret")
    assert str(env) in settings.database_url


def test_services_are_shared_and_wired(env):
    auth = get_auth_service()
    assert get_auth_service() is auth
    assert auth.settings_service is service_manager.services[ServiceType.SETTINGS_SERVICE.value]
    assert auth.ready


@pytest.mark.anyio
async def test_teardown_clears_registry(env):
    db_service = get_db_service()
    await db_service.create_db_and_tables()
    assert (env / "test.db").exists()

    await service_manager.teardown()
    assert service_manager.services == {}
    assert get_db_service() is not db_service


def test_factory_must_implement_create(env):
    class Incomplete(ServiceFactory):
        dependencies = []

    with pytest.raises(TypeError):
        Incomplete()

    service = SettingsServiceFactory().create()
    assert service.settings.environment == "test"
