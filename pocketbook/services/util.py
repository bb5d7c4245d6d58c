from loguru import logger

from pocketbook.services.deps import get_db_service, get_settings_service
from pocketbook.services.manager import service_manager


async def initialize_services() -> None:
    settings_service = get_settings_service()
    logger.info(f"Initializing services for environment {settings_service.settings.environment}")
    await get_db_service().create_db_and_tables()


async def teardown_services() -> None:
    try:
        await service_manager.teardown()
    except Exception as exc:
        logger.exception(exc)
