from typing import Annotated

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    environment: Annotated[str, Field(strict=True, alias="ENVIRONMENT")] = "development"
    database_url: Annotated[str, Field(strict=True, alias="DATABASE_URL")] = "sqlite+aiosqlite:///./pocketbook.db"
    jwt_secret: Annotated[str, Field(strict=True, alias="JWT_SECRET")] = "change-me"
    access_expire_min: Annotated[int, Field(strict=False, alias="ACCESS_EXPIRE_MIN")] = 60
    refresh_expire_days: Annotated[int, Field(strict=False, alias="REFRESH_EXPIRE_DAYS")] = 7
    # comma separated, compared case-insensitively
    admin_emails: Annotated[str, Field(strict=True, alias="ADMIN_EMAILS")] = ""
    avatar_dir: Annotated[str, Field(strict=True, alias="AVATAR_DIR")] = "./uploads/avatars"
    log_level: Annotated[str, Field(strict=True, alias="LOG_LEVEL")] = "INFO"
    log_file: Annotated[str | None, Field(alias="LOG_FILE")] = None
    db_connection_settings: dict = {
        "pool_size": 20,
        "max_overflow": 30,
        "pool_timeout": 30,  # Seconds to wait for a connection from pool
        "pool_pre_ping": True,
        "pool_recycle": 1800,  # Recycle connections after 30 minutes
        "echo": False,
    }
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore", populate_by_name=True)

    @property
    def admin_email_set(self) -> frozenset[str]:
        return frozenset(email.strip().lower() for email in self.admin_emails.split(",") if email.strip())
