from fastapi import Depends

from app.models.user import User
from app.utils.errors import UnauthorizedError
from app.utils.token import get_current_user


def require_staff(user: User):
    if not user.is_admin:
        raise UnauthorizedError("Admin access required")


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    require_staff(current_user)
    return current_user
