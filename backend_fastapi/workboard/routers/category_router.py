from fastapi import APIRouter, Depends, status
from typing import Optional
import uuid

from workboard.db.models.user_model_db import User as UserDBModel
from workboard.dependencies import get_category_service
from workboard.models.category_models import CategoryCreate, CategoryUpdate, CategoryReorder, CategoryData, CategoryListData
from workboard.models.common_models import ApiResponse, MessageResponse, ok
from workboard.routers.auth_router import get_current_active_user
from workboard.services.category_service import CategoryService
from workboard.utils.rbac import resolve_workspace_id

router = APIRouter(prefix="/categories", tags=["Categories"])

def _category_list(service: CategoryService, user: UserDBModel, workspace_id: uuid.UUID) -> CategoryListData:
    return CategoryListData(categories=[c.to_pydantic(count) for c, count in service.list_categories(user, workspace_id)])

@router.get("", response_model=ApiResponse[CategoryListData])
async def list_categories(
    workspace_id: Optional[uuid.UUID] = Depends(resolve_workspace_id),
    current_user: UserDBModel = Depends(get_current_active_user),
    service: CategoryService = Depends(get_category_service),
):
    return ok(_category_list(service, current_user, workspace_id))

@router.patch("/reorder", response_model=ApiResponse[CategoryListData])
async def reorder_categories(
    reorder_in: CategoryReorder,
    current_user: UserDBModel = Depends(get_current_active_user),
    service: CategoryService = Depends(get_category_service),
):
    workspace_id = service.reorder_categories(current_user, reorder_in.category_ids, reorder_in.workspace_id)
    return ok(_category_list(service, current_user, workspace_id), "Categories reordered successfully")

@router.get("/{category_id}", response_model=ApiResponse[CategoryData])
async def read_category(
    category_id: uuid.UUID,
    current_user: UserDBModel = Depends(get_current_active_user),
    service: CategoryService = Depends(get_category_service),
):
    category = service.get_category(current_user, category_id)
    return ok(CategoryData(category=category.to_pydantic(service.task_count(category))))

@router.post("", response_model=ApiResponse[CategoryData], status_code=status.HTTP_201_CREATED)
async def create_category(
    category_in: CategoryCreate,
    workspace_id: Optional[uuid.UUID] = Depends(resolve_workspace_id),
    current_user: UserDBModel = Depends(get_current_active_user),
    service: CategoryService = Depends(get_category_service),
):
    category = service.create_category(current_user, category_in.workspace_id or workspace_id, category_in)
    return ok(CategoryData(category=category.to_pydantic(0)), "Category created successfully")

@router.put("/{category_id}", response_model=ApiResponse[CategoryData])
async def update_category(
    category_id: uuid.UUID,
    category_in: CategoryUpdate,
    current_user: UserDBModel = Depends(get_current_active_user),
    service: CategoryService = Depends(get_category_service),
):
    category = service.update_category(current_user, category_id, category_in)
    return ok(CategoryData(category=category.to_pydantic(service.task_count(category))), "Category updated successfully")

@router.delete("/{category_id}", response_model=MessageResponse)
async def delete_category(
    category_id: uuid.UUID,
    current_user: UserDBModel = Depends(get_current_active_user),
    service: CategoryService = Depends(get_category_service),
):
    service.delete_category(current_user, category_id)
    return MessageResponse(message="Category deleted successfully")
