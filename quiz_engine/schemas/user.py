from pydantic import BaseModel

from quiz_engine.models import UserRole


class CurrentUser(BaseModel):
    """Authenticated caller, as asserted by the access token."""
    id: str
    role: UserRole
