from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional
import uuid

from workboard.core.errors import AppError
from workboard.db.models.user_model_db import User as UserDBModel
from workboard.dependencies import get_task_service
from workboard.models.common_models import ApiResponse, MessageResponse, ok
from workboard.models.task_models import (
    TaskCreate, TaskUpdate, TaskPositionUpdate, TaskReorder, TaskStatusEnum, TaskPriorityEnum,
    TaskData, TaskListData, SubtaskListData, TaskPositionData, TaskPositionPublic,
    PRIORITY_MESSAGE, STATUS_MESSAGE,
)
from workboard.routers.auth_router import get_current_active_user
from workboard.services.task_service import TaskService, TaskFilters
from workboard.utils.rbac import resolve_workspace_id

router = APIRouter(prefix="/tasks", tags=["Tasks"])

def _parse_ids(raw: Optional[str]) -> List[uuid.UUID]:
    if not raw:
        return []
    try:
        return [uuid.UUID(part.strip()) for part in raw.split(",") if part.strip()]
    except ValueError:
        raise AppError.bad_request("Invalid assignee ID format.")

def _parse_choice(raw: Optional[str], enum_cls, message: str):
    if not raw:
        return None
    try:
        return enum_cls(raw)
    except ValueError:
        raise AppError.bad_request(message)

@router.get("", response_model=ApiResponse[TaskListData])
async def list_tasks(
    workspace_id: Optional[uuid.UUID] = Depends(resolve_workspace_id),
    category_id: Optional[uuid.UUID] = None,
    assignee_ids: Optional[str] = Query(None, description="Comma separated user ids; matches any"),
    status_filter: Optional[str] = Query(None, alias="status"),
    priority: Optional[str] = None,
    search: Optional[str] = None,
    parent_task_id: Optional[uuid.UUID] = None,
    current_user: UserDBModel = Depends(get_current_active_user),
    service: TaskService = Depends(get_task_service),
):
    filters = TaskFilters(
        category_id=category_id,
        assignee_ids=_parse_ids(assignee_ids),
        status=_parse_choice(status_filter, TaskStatusEnum, STATUS_MESSAGE),
        priority=_parse_choice(priority, TaskPriorityEnum, PRIORITY_MESSAGE),
        search=search,
        parent_task_id=parent_task_id,
    )
    tasks = service.list_tasks(current_user, workspace_id, filters)
    return ok(TaskListData(tasks=tasks, count=len(tasks)))

@router.patch("/reorder", response_model=MessageResponse)
async def reorder_tasks(
    reorder_in: TaskReorder,
    current_user: UserDBModel = Depends(get_current_active_user),
    service: TaskService = Depends(get_task_service),
):
    service.reorder_tasks(current_user, reorder_in.task_ids)
    return MessageResponse(message="Tasks reordered successfully")

@router.get("/{task_id}", response_model=ApiResponse[TaskData])
async def read_task(
    task_id: uuid.UUID,
    current_user: UserDBModel = Depends(get_current_active_user),
    service: TaskService = Depends(get_task_service),
):
    task = service.get_task(current_user, task_id)
    return ok(TaskData(task=service.to_public(task)))

@router.get("/{task_id}/subtasks", response_model=ApiResponse[SubtaskListData])
async def list_subtasks(
    task_id: uuid.UUID,
    current_user: UserDBModel = Depends(get_current_active_user),
    service: TaskService = Depends(get_task_service),
):
    subtasks = service.get_subtasks(current_user, task_id)
    return ok(SubtaskListData(subtasks=subtasks, count=len(subtasks)))

@router.post("", response_model=ApiResponse[TaskData], status_code=status.HTTP_201_CREATED)
async def create_task(
    task_in: TaskCreate,
    workspace_id: Optional[uuid.UUID] = Depends(resolve_workspace_id),
    current_user: UserDBModel = Depends(get_current_active_user),
    service: TaskService = Depends(get_task_service),
):
    task = service.create_task(current_user, workspace_id, task_in)
    return ok(TaskData(task=service.to_public(task)), "Task created successfully")

@router.put("/{task_id}", response_model=ApiResponse[TaskData])
async def update_task(
    task_id: uuid.UUID,
    task_in: TaskUpdate,
    current_user: UserDBModel = Depends(get_current_active_user),
    service: TaskService = Depends(get_task_service),
):
    task = service.update_task(current_user, task_id, task_in)
    return ok(TaskData(task=service.to_public(task)), "Task updated successfully")

@router.patch("/{task_id}/position", response_model=ApiResponse[TaskPositionData])
async def update_task_position(
    task_id: uuid.UUID,
    position_in: TaskPositionUpdate,
    current_user: UserDBModel = Depends(get_current_active_user),
    service: TaskService = Depends(get_task_service),
):
    task = service.update_task_position(current_user, task_id, position_in)
    public = TaskPositionPublic(id=task.id, title=task.title, category_id=task.category_id, position=task.position)
    return ok(TaskPositionData(task=public), "Task position updated successfully")

@router.delete("/{task_id}", response_model=MessageResponse)
async def delete_task(
    task_id: uuid.UUID,
    current_user: UserDBModel = Depends(get_current_active_user),
    service: TaskService = Depends(get_task_service),
):
    service.delete_task(current_user, task_id)
    return MessageResponse(message="Task deleted successfully")
