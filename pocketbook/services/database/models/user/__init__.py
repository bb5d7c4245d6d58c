from pocketbook.services.database.models.user.model import User

__all__ = ["User"]
