from fastapi import APIRouter, Depends, status
import uuid

from workboard.db.models.user_model_db import User as UserDBModel
from workboard.db.models.workspace_model_db import Workspace as WorkspaceDBModel
from workboard.dependencies import get_invitation_service
from workboard.models.common_models import ApiResponse, MessageResponse, ok
from workboard.models.invitation_models import (
    InvitationCreate, InvitationData, InvitationListData, InviteInfo, AcceptInvitationData,
)
from workboard.routers.auth_router import get_current_active_user
from workboard.services.invitation_service import InvitationService

router = APIRouter(prefix="/workspaces", tags=["Invitations"])

# Public: the invite page is shown before the visitor logs in
@router.get("/invite-info/{token}", response_model=ApiResponse[InviteInfo])
async def read_invite_info(token: str, service: InvitationService = Depends(get_invitation_service)):
    return ok(service.get_invite_info(token))

@router.post("/accept-invite/{token}", response_model=ApiResponse[AcceptInvitationData])
async def accept_workspace_invitation(
    token: str,
    current_user: UserDBModel = Depends(get_current_active_user),
    service: InvitationService = Depends(get_invitation_service),
):
    data, message = service.accept_invitation(current_user, token)
    return ok(data, message)

@router.post("/{workspace_id}/invite", response_model=ApiResponse[InvitationData], status_code=status.HTTP_201_CREATED)
async def invite_to_workspace(
    workspace_id: uuid.UUID,
    invitation_in: InvitationCreate,
    current_user: UserDBModel = Depends(get_current_active_user),
    service: InvitationService = Depends(get_invitation_service),
):
    invitation, delivered = service.create_invitation(current_user, workspace_id, invitation_in)
    workspace = WorkspaceDBModel.objects(id=workspace_id).only('name').first()
    public = invitation.to_pydantic(include_token=True, workspace_name=workspace.name if workspace else None)
    if delivered:
        message = f"Invitation sent to {invitation.email}"
    else:
        message = f"Invitation created for {invitation.email}, but email delivery pending"
    return ok(InvitationData(invitation=public), message)

@router.get("/{workspace_id}/invitations", response_model=ApiResponse[InvitationListData])
async def list_pending_invitations(
    workspace_id: uuid.UUID,
    current_user: UserDBModel = Depends(get_current_active_user),
    service: InvitationService = Depends(get_invitation_service),
):
    invitations = service.list_invitations(current_user, workspace_id)
    return ok(InvitationListData(invitations=[i.to_pydantic(include_token=True) for i in invitations]))

@router.delete("/{workspace_id}/invitations/{invitation_id}", response_model=MessageResponse)
async def cancel_pending_invitation(
    workspace_id: uuid.UUID,
    invitation_id: uuid.UUID,
    current_user: UserDBModel = Depends(get_current_active_user),
    service: InvitationService = Depends(get_invitation_service),
):
    service.cancel_invitation(current_user, workspace_id, invitation_id)
    return MessageResponse(message="Invitation cancelled")
