from dataclasses import dataclass
from typing import Optional

from fastapi import HTTPException, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from src.models.database import get_db
from src.models.student import AdminUser, UserRole
from src.utils.security import decode_access_token

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class Caller:
    user_id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


async def get_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db)
) -> Caller:
    """
    Verify the bearer token and resolve the caller's role with a single
    user_roles lookup. Admin callers must still have an active account.
    """
    if not credentials or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=401,
            detail="Missing Authorization header"
        )

    user_id = decode_access_token(credentials.credentials)
    if not user_id:
        raise HTTPException(
            status_code=401,
            detail="Invalid token"
        )

    role = db.query(UserRole.role).filter(UserRole.user_id == user_id).first()
    if not role:
        raise HTTPException(
            status_code=403,
            detail="Forbidden"
        )

    if role[0] == "admin":
        # Deactivating an admin revokes tokens already issued to them
        admin = db.query(AdminUser.is_active).filter(AdminUser.id == user_id).first()
        if not admin or not admin[0]:
            raise HTTPException(
                status_code=403,
                detail="Forbidden"
            )

    return Caller(user_id=user_id, role=role[0])


async def require_admin(caller: Caller = Depends(get_caller)) -> Caller:
    if not caller.is_admin:
        raise HTTPException(
            status_code=403,
            detail="Forbidden - Admin access required"
        )
    return caller


def ensure_student_access(caller: Caller, student_id: str) -> None:
    """Admins may act on any student; a student only on themselves"""
    if caller.is_admin:
        return
    if caller.role == "student" and caller.user_id == student_id:
        return
    raise HTTPException(status_code=403, detail="Forbidden")


# Create dependencies that can be used in route decorators
caller_dependency = Depends(get_caller)
admin_dependency = Depends(require_admin)
