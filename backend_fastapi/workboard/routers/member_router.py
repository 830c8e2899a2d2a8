from fastapi import APIRouter, Depends
import uuid

from workboard.db.models.user_model_db import User as UserDBModel
from workboard.dependencies import get_member_service
from workboard.models.common_models import ApiResponse, MessageResponse, ok
from workboard.models.member_models import MemberUpdateRole, MemberListData, MemberRoleData
from workboard.routers.auth_router import get_current_active_user
from workboard.services.member_service import MemberService

router = APIRouter(prefix="/workspaces/{workspace_id}/members", tags=["Workspace Members"])

@router.get("", response_model=ApiResponse[MemberListData])
async def list_workspace_members(
    workspace_id: uuid.UUID,
    current_user: UserDBModel = Depends(get_current_active_user),
    service: MemberService = Depends(get_member_service),
):
    return ok(MemberListData(members=service.list_members(current_user, workspace_id)))

@router.patch("/{member_id}", response_model=ApiResponse[MemberRoleData])
async def update_member_role_in_workspace(
    workspace_id: uuid.UUID,
    member_id: uuid.UUID,
    role_update: MemberUpdateRole,
    current_user: UserDBModel = Depends(get_current_active_user),
    service: MemberService = Depends(get_member_service),
):
    member = service.update_member_role(current_user, workspace_id, member_id, role_update.role)
    return ok(MemberRoleData(member_id=member.id, role=member.role), "Member role updated")

@router.delete("/{member_id}", response_model=MessageResponse)
async def remove_member_from_workspace(
    workspace_id: uuid.UUID,
    member_id: uuid.UUID,
    current_user: UserDBModel = Depends(get_current_active_user),
    service: MemberService = Depends(get_member_service),
):
    left = service.remove_member(current_user, workspace_id, member_id)
    return MessageResponse(message="You have left the workspace" if left else "Member removed from workspace")
