from pocketbook.logging.logger import configure
from pocketbook.main import create_app
from pocketbook.services.deps import get_settings_service


if __name__ == "__main__":
    import uvicorn

    settings = get_settings_service().settings
    configure(settings.log_level, settings.log_file)
    app = create_app()  # build the app directly instead of an import string

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=8000,
        log_level="error",
        reload=False,
        loop="asyncio",
    )
