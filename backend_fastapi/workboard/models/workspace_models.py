from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import datetime
import uuid

from .common_models import ApiModel
from .role_models import RoleEnum

WORKSPACE_NAME_MAX_LENGTH = 100

def clean_workspace_name(value: Optional[str]) -> str:
    value = (value or "").strip()
    if not value:
        raise ValueError("Workspace name is required")
    if len(value) > WORKSPACE_NAME_MAX_LENGTH:
        raise ValueError(f"Workspace name must be {WORKSPACE_NAME_MAX_LENGTH} characters or less")
    return value

class WorkspaceCreate(BaseModel):
    name: Optional[str] = Field(default=None, validate_default=True)

    @field_validator("name")
    @classmethod
    def check_name(cls, v):
        return clean_workspace_name(v)

class WorkspaceUpdate(BaseModel):
    name: Optional[str] = None

    @field_validator("name")
    @classmethod
    def check_name(cls, v):
        return clean_workspace_name(v)

class WorkspacePublic(ApiModel):
    id: uuid.UUID
    name: str
    owner_id: uuid.UUID
    owner_name: Optional[str] = None
    owner_email: Optional[str] = None
    user_role: Optional[RoleEnum] = None
    member_count: int = 0
    created_at: datetime
    updated_at: Optional[datetime] = None

class WorkspaceData(ApiModel):
    workspace: WorkspacePublic

class WorkspaceListData(ApiModel):
    workspaces: List[WorkspacePublic]

class DeletedCounts(ApiModel):
    members: int
    tasks: int
    categories: int

class WorkspaceDeleteData(ApiModel):
    deleted_counts: DeletedCounts

class WorkspaceUser(ApiModel):
    id: uuid.UUID
    email: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    role: RoleEnum
    created_at: Optional[datetime] = None

class WorkspaceUserListData(ApiModel):
    users: List[WorkspaceUser]
