from fastapi import APIRouter, Depends, Query
from loguru import logger
from sqlmodel.ext.asyncio.session import AsyncSession

from pocketbook.exceptions import ValidationError
from pocketbook.services.auth.utils import get_current_user
from pocketbook.services.database.models.base import utcnow
from pocketbook.services.database.models.user import User
from pocketbook.services.deps import get_session, get_storage_service

router = APIRouter(tags=["avatars"])


@router.delete("/avatars")
async def delete_avatar(
    file: list[str] = Query(...),
    db: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    """Remove one of the caller's avatars. A file that is already gone counts as removed."""
    if len(file) != 1:
        raise ValidationError("Exactly one file name is expected")
    filename = file[0]

    removed = get_storage_service().delete_avatar(filename, user.id, user.avatar_file)

    if user.avatar_file == filename:
        user.avatar_file = None
        user.updated_at = utcnow()
        db.add(user)
        await db.commit()
        logger.info(f"Cleared avatar of user {user.id}")

    return {"success": True, "removed": removed}
