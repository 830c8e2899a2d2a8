from fastapi import APIRouter, Depends, Query, status
from typing import Optional
import uuid

from workboard.db.models.user_model_db import User as UserDBModel
from workboard.dependencies import get_workspace_service, get_activity_service
from workboard.models.activity_models import ActivityListData
from workboard.models.common_models import ApiResponse, ok
from workboard.models.role_models import RoleEnum
from workboard.models.workspace_models import (
    WorkspaceCreate, WorkspaceUpdate, WorkspaceData, WorkspaceListData,
    WorkspaceDeleteData, WorkspaceUserListData,
)
from workboard.routers.auth_router import get_current_active_user
from workboard.services.activity_service import ActivityService
from workboard.services.workspace_service import WorkspaceService
from workboard.utils.rbac import WorkspaceContext, WorkspaceRoleDepends, resolve_workspace_id

router = APIRouter(prefix="/workspaces", tags=["Workspaces"])

@router.get("", response_model=ApiResponse[WorkspaceListData])
async def list_user_workspaces(
    current_user: UserDBModel = Depends(get_current_active_user),
    service: WorkspaceService = Depends(get_workspace_service),
):
    return ok(WorkspaceListData(workspaces=service.list_workspaces(current_user)))

@router.post("", response_model=ApiResponse[WorkspaceData], status_code=status.HTTP_201_CREATED)
async def create_new_workspace(
    workspace_data: WorkspaceCreate,
    current_user: UserDBModel = Depends(get_current_active_user),
    service: WorkspaceService = Depends(get_workspace_service),
):
    workspace = service.create_workspace(current_user, workspace_data)
    public = workspace.to_pydantic(user_role=RoleEnum.ADMIN, member_count=1)
    return ok(WorkspaceData(workspace=public), "Workspace created successfully")

# Declared before "/{workspace_id}" so "users" is not read as an id
@router.get("/users", response_model=ApiResponse[WorkspaceUserListData])
async def list_workspace_users(
    workspace_id: Optional[uuid.UUID] = Depends(resolve_workspace_id),
    current_user: UserDBModel = Depends(get_current_active_user),
    service: WorkspaceService = Depends(get_workspace_service),
):
    return ok(WorkspaceUserListData(users=service.workspace_users(current_user, workspace_id)))

@router.get("/{workspace_id}", response_model=ApiResponse[WorkspaceData])
async def read_workspace_by_id(
    workspace_id: uuid.UUID,
    current_user: UserDBModel = Depends(get_current_active_user),
    service: WorkspaceService = Depends(get_workspace_service),
):
    return ok(WorkspaceData(workspace=service.get_workspace(current_user, workspace_id)))

@router.put("/{workspace_id}", response_model=ApiResponse[WorkspaceData])
async def update_existing_workspace(
    workspace_id: uuid.UUID,
    workspace_data: WorkspaceUpdate,
    current_user: UserDBModel = Depends(get_current_active_user),
    service: WorkspaceService = Depends(get_workspace_service),
):
    workspace = service.update_workspace(current_user, workspace_id, workspace_data)
    return ok(WorkspaceData(workspace=workspace), "Workspace updated successfully")

@router.delete("/{workspace_id}", response_model=ApiResponse[WorkspaceDeleteData])
async def delete_existing_workspace(
    workspace_id: uuid.UUID,
    current_user: UserDBModel = Depends(get_current_active_user),
    service: WorkspaceService = Depends(get_workspace_service),
):
    counts = service.delete_workspace(current_user, workspace_id)
    return ok(WorkspaceDeleteData(deleted_counts=counts), "Workspace deleted successfully")

@router.get("/{workspace_id}/activity", response_model=ApiResponse[ActivityListData])
async def list_workspace_activity(
    limit: int = Query(50, ge=1, le=200),
    context: WorkspaceContext = Depends(WorkspaceRoleDepends()),
    activity: ActivityService = Depends(get_activity_service),
):
    entries = activity.recent(context.workspace_id, limit=limit)
    return ok(ActivityListData(activities=[e.to_pydantic() for e in entries]))
