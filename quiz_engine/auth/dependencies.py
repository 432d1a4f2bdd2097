from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError

from quiz_engine.auth.jwt import read_identity
from quiz_engine.models import UserRole
from quiz_engine.schemas.user import CurrentUser


bearer_scheme = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
) -> CurrentUser:
    """Caller identity from the bearer access token, 401 when it cannot be trusted."""
    try:
        user_id, role = read_identity(credentials.credentials)
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )
    return CurrentUser(id=user_id, role=role)


def require_roles(*roles: UserRole, detail: str):
    async def checker(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current_user.role not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
        return current_user
    return checker


# admins can do everything a teacher can
is_teacher = require_roles(
    UserRole.TEACHER, UserRole.ADMIN,
    detail="Only teachers can access this resource",
)

is_student = require_roles(
    UserRole.STUDENT,
    detail="Only students can access this resource",
)
