from typing import Tuple

from jose import JWTError, jwt

from quiz_engine.config import SECRET_KEY, ALGORITHM
from quiz_engine.models import UserRole


def verify_token(token: str, expected_type: str = "access") -> dict:
    """
    Decode a JWT issued by the auth service and check its `type` claim.
    Any failure surfaces as JWTError.
    """
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        raise JWTError("Invalid or expired token") from e

    if payload.get("type") != expected_type:
        raise JWTError(f"Invalid token type. Expected '{expected_type}'.")
    return payload


def read_identity(token: str) -> Tuple[str, UserRole]:
    """Returns (user_id, role) from an access token."""
    payload = verify_token(token, expected_type="access")

    user_id = payload.get("user_id")
    if not user_id:
        raise JWTError("Token has no user_id claim")

    try:
        role = UserRole(payload.get("role"))
    except ValueError as e:
        raise JWTError(f"Unknown role {payload.get('role')!r}") from e

    return str(user_id), role
