from fastapi import Depends, Request
from json import JSONDecodeError
from typing import Iterable, Optional
import logging
import uuid

from workboard.core.errors import AppError
from workboard.db.models.member_model_db import Member as MemberDBModel
from workboard.db.models.user_model_db import User as UserDBModel
from workboard.dependencies import get_access_service
from workboard.models.role_models import RoleEnum
from workboard.routers.auth_router import get_current_active_user
from workboard.services.access_service import AccessService

logger = logging.getLogger(__name__)

def _parse_workspace_id(value) -> uuid.UUID:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise AppError.bad_request("Invalid workspace ID format.")

async def resolve_workspace_id(request: Request) -> Optional[uuid.UUID]:
    """Workspace id of the request: path, then query string, then JSON body."""
    value = request.path_params.get("workspace_id") or request.query_params.get("workspace_id")
    if not value and request.method in ("POST", "PUT", "PATCH"):
        try:
            body = await request.json()
        except (JSONDecodeError, UnicodeDecodeError):
            body = None
        if isinstance(body, dict):
            value = body.get("workspace_id") or body.get("workspaceId")
    return _parse_workspace_id(value) if value else None

class WorkspaceContext:
    def __init__(self, user: UserDBModel, workspace_id: uuid.UUID, membership: MemberDBModel):
        self.user = user
        self.workspace_id = workspace_id
        self.membership = membership

    @property
    def role(self) -> RoleEnum:
        return self.membership.role

class WorkspaceRoleDepends:
    """Resolve the request's workspace and require membership, optionally with one of ``allowed_roles``."""

    def __init__(self, allowed_roles: Optional[Iterable[RoleEnum]] = None):
        self.allowed_roles = frozenset(allowed_roles) if allowed_roles else None

    async def __call__(
        self,
        workspace_id: Optional[uuid.UUID] = Depends(resolve_workspace_id),
        current_user: UserDBModel = Depends(get_current_active_user),
        access: AccessService = Depends(get_access_service),
    ) -> WorkspaceContext:
        if self.allowed_roles is None:
            membership = access.require_member(current_user.id, workspace_id)
        else:
            membership = access.require_role(current_user.id, workspace_id, self.allowed_roles)
        return WorkspaceContext(current_user, workspace_id, membership)
