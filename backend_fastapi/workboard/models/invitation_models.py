from pydantic import BaseModel, field_validator
from typing import List, Optional
from datetime import datetime
from enum import Enum
import uuid

from .common_models import ApiModel
from .role_models import RoleEnum, parse_role

class InviteStatusEnum(str, Enum):
    VALID = "valid"
    ACCEPTED = "accepted"
    EXPIRED = "expired"
    INVALID = "invalid"

class InvitationCreate(BaseModel):
    # Plain str: the syntax check happens in the service so it can report
    # "Email is required" and "Invalid email format" separately.
    email: Optional[str] = None
    role: RoleEnum = RoleEnum.MEMBER

    @field_validator("role", mode="before")
    @classmethod
    def check_role(cls, v):
        return parse_role(v) if isinstance(v, str) else v

class InvitationPublic(ApiModel):
    id: uuid.UUID
    email: str
    role: RoleEnum
    token: Optional[str] = None
    expires_at: datetime
    created_at: datetime
    workspace_name: Optional[str] = None
    invited_by_name: Optional[str] = None

class InvitationData(ApiModel):
    invitation: InvitationPublic

class InvitationListData(ApiModel):
    invitations: List[InvitationPublic]

class InviteInfo(ApiModel):
    workspace_name: Optional[str] = None
    inviter_name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[RoleEnum] = None
    expires_at: Optional[datetime] = None
    invite_status: InviteStatusEnum

class AcceptInvitationData(ApiModel):
    workspace_id: uuid.UUID
    workspace_name: Optional[str] = None
    role: Optional[RoleEnum] = None
    needs_onboarding: bool
