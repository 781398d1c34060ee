# certverify/core/rbac.py
from fastapi import Depends

from certverify.api.deps import get_current_user
from certverify.core.errors import PermissionDenied
from certverify.models.user import ROLE_ADMIN, ROLE_RECIPIENT, User

_KNOWN = {ROLE_ADMIN, ROLE_RECIPIENT}


def require_roles(*roles: str):
    unknown = set(roles) - _KNOWN
    if unknown:
        raise RuntimeError(f"Unknown role: {sorted(unknown)}")
    allowed = set(roles)

    def dep(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            raise PermissionDenied("Insufficient role")
        return user
    return dep


def is_admin(user: User | None) -> bool:
    return user is not None and user.role == ROLE_ADMIN
