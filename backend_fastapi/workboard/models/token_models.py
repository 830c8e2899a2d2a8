from pydantic import BaseModel
from typing import Optional
import uuid

from .user_models import UserPublic

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: Optional[UserPublic] = None # Returned on login/register

class TokenClaims(BaseModel):
    """The claims the API relies on: who the token is for and its revocation id."""
    user_id: uuid.UUID
    jti: str
