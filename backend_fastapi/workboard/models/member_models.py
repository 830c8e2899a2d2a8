from pydantic import BaseModel, field_validator
from typing import List, Optional
from datetime import datetime
import uuid

from .common_models import ApiModel
from .role_models import RoleEnum, parse_role

class MemberUpdateRole(BaseModel):
    role: RoleEnum

    @field_validator("role", mode="before")
    @classmethod
    def check_role(cls, v):
        return parse_role(v) if isinstance(v, str) else v

class MemberResponse(ApiModel):
    member_id: uuid.UUID
    user_id: uuid.UUID
    role: RoleEnum
    joined_at: datetime
    name: Optional[str] = None
    email: str
    avatar_url: Optional[str] = None
    is_owner: bool = False

class MemberListData(ApiModel):
    members: List[MemberResponse]

class MemberRoleData(ApiModel):
    member_id: uuid.UUID
    role: RoleEnum
