from __future__ import annotations

from pathlib import Path
from typing import Optional

from loguru import logger

from pocketbook.exceptions import NotOwnerError, ValidationError
from pocketbook.services.base import Service
from pocketbook.services.settings.service import SettingsService

FORBIDDEN_FRAGMENTS = ("..", "/", "\\")


def avatar_prefix(user_id: int) -> str:
    """Uploaded avatars are named ``<user id>-<anything>``."""
    return f"{user_id}-"


class StorageService(Service):
    name = "storage_service"

    def __init__(self, settings_service: SettingsService):
        self.settings_service = settings_service
        self.avatar_dir = Path(settings_service.settings.avatar_dir)

    def avatar_path(self, filename: str) -> Path:
        if not filename or any(fragment in filename for fragment in FORBIDDEN_FRAGMENTS):
            raise ValidationError("Invalid file name")
        return self.avatar_dir / filename

    def owns_avatar(self, filename: str, owner_id: int, current_file: Optional[str] = None) -> bool:
        return filename == current_file or filename.startswith(avatar_prefix(owner_id))

    def delete_avatar(self, filename: str, owner_id: int, current_file: Optional[str] = None) -> bool:
        """Remove one of the owner's avatar files. Returns False when there was nothing to remove.

        The name is checked for traversal first (400), then for ownership (404).
        """
        path = self.avatar_path(filename)
        if not self.owns_avatar(filename, owner_id, current_file):
            raise NotOwnerError("Avatar not found")
        try:
            path.unlink()
        except FileNotFoundError:
            logger.debug(f"Avatar {filename} already gone")
            return False
        logger.info(f"Removed avatar {filename} of user {owner_id}")
        return True
