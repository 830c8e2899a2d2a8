from typing import List, Optional, Tuple
import uuid

from mongoengine.errors import NotUniqueError

from workboard.core.errors import AppError
from workboard.db.models.category_model_db import Category as CategoryDBModel
from workboard.db.models.task_model_db import Task as TaskDBModel
from workboard.db.models.user_model_db import User as UserDBModel
from workboard.db.models.workspace_model_db import Workspace as WorkspaceDBModel
from workboard.models.category_models import CategoryCreate, CategoryUpdate
from workboard.services.access_service import AccessService
from workboard.services.activity_service import ActivityService
from workboard.services.ordering import PositionManager, category_scope

DUPLICATE_NAME_MESSAGE = "Category with this name already exists"


class CategoryService:
    def __init__(self, positions: PositionManager, access: AccessService, activity: ActivityService):
        self.positions = positions
        self.access = access
        self.activity = activity

    def task_count(self, category: CategoryDBModel) -> int:
        return TaskDBModel.objects(category=category.id).count()

    def list_categories(self, user: UserDBModel, workspace_id: Optional[uuid.UUID]) -> List[Tuple[CategoryDBModel, int]]:
        self.access.require_member(user.id, workspace_id)
        categories = CategoryDBModel.objects(workspace=workspace_id).order_by('position')
        return [(c, self.task_count(c)) for c in categories]

    def get_category(self, user: UserDBModel, category_id: uuid.UUID) -> CategoryDBModel:
        category = CategoryDBModel.objects(id=category_id).first()
        if not category:
            raise AppError.not_found("Category not found")
        # Existence in another tenant's workspace is reported as "no access"
        self.access.require_member(user.id, category.workspace_id)
        return category

    def create_category(self, user: UserDBModel, workspace_id: Optional[uuid.UUID], data: CategoryCreate) -> CategoryDBModel:
        self.access.require_editor(user.id, workspace_id)
        workspace = WorkspaceDBModel.objects(id=workspace_id).first()
        if not workspace:
            raise AppError.not_found("Workspace not found")
        self._ensure_unique_name(workspace_id, data.name)

        category = CategoryDBModel(name=data.name, color=data.color, created_by=user)
        try:
            self.positions.append(category, category_scope(workspace))
        except NotUniqueError:
            raise AppError.conflict(DUPLICATE_NAME_MESSAGE)
        self.activity.log(workspace_id, user.id, "created", "category", category.id, {"name": category.name})
        return category

    def update_category(self, user: UserDBModel, category_id: uuid.UUID, data: CategoryUpdate) -> CategoryDBModel:
        category = CategoryDBModel.objects(id=category_id).first()
        if not category:
            raise AppError.not_found("Category not found")
        self.access.require_editor(user.id, category.workspace_id)

        fields = data.model_fields_set
        changed = {f for f in fields if getattr(data, f) is not None}
        if not changed:
            raise AppError.bad_request("No fields to update")

        if "name" in changed and data.name.lower() != category.name.lower():
            self._ensure_unique_name(category.workspace_id, data.name, exclude_id=category.id)
        def apply(doc: CategoryDBModel) -> None:
            if "name" in changed:
                doc.name = data.name
            if "color" in changed:
                doc.color = data.color

        try:
            if "position" in changed:
                # Rename and move commit together or not at all
                self.positions.move(category, category_scope(category.workspace), data.position, apply=apply)
            else:
                apply(category)
                category.save()
        except NotUniqueError:
            raise AppError.conflict(DUPLICATE_NAME_MESSAGE)

        self.activity.log(category.workspace_id, user.id, "updated", "category", category.id, {"fields": sorted(changed)})
        return category

    def delete_category(self, user: UserDBModel, category_id: uuid.UUID) -> None:
        category = CategoryDBModel.objects(id=category_id).first()
        if not category:
            raise AppError.not_found("Category not found")
        self.access.require_editor(user.id, category.workspace_id)

        task_count = self.task_count(category)
        if task_count > 0:
            raise AppError.conflict(
                f"Cannot delete category with {task_count} task(s). Please move or delete the tasks first.",
                data={"taskCount": task_count},
            )
        self.positions.remove(category)
        self.activity.log(category.workspace_id, user.id, "deleted", "category", category_id, {"name": category.name})

    def reorder_categories(self, user: UserDBModel, category_ids: List[uuid.UUID], workspace_id: Optional[uuid.UUID] = None) -> uuid.UUID:
        """Set category positions to the order of ``category_ids``; returns the workspace id."""
        if not category_ids:
            raise AppError.bad_request("categoryIds array is required")
        unique_ids = list(dict.fromkeys(category_ids))
        found = list(CategoryDBModel.objects(id__in=unique_ids).only('id', 'workspace'))
        if len(found) != len(unique_ids):
            raise AppError.bad_request("Some category IDs are invalid")
        workspace_ids = {c.workspace_id for c in found}
        if len(workspace_ids) != 1:
            raise AppError.conflict("All categories must belong to the same workspace")
        scope_workspace_id = workspace_ids.pop()
        if workspace_id is not None and workspace_id != scope_workspace_id:
            raise AppError.conflict("All categories must belong to the same workspace")

        self.access.require_editor(user.id, scope_workspace_id)

        workspace = WorkspaceDBModel.objects(id=scope_workspace_id).first()
        self.positions.reorder(category_scope(workspace), unique_ids)
        self.activity.log(scope_workspace_id, user.id, "reordered", "category", None, {"categoryIds": [str(i) for i in unique_ids]})
        return scope_workspace_id

    def _ensure_unique_name(self, workspace_id: uuid.UUID, name: str, exclude_id: Optional[uuid.UUID] = None) -> None:
        query = CategoryDBModel.objects(workspace=workspace_id, name_key=name.lower())
        if exclude_id is not None:
            query = query.filter(id__ne=exclude_id)
        if query.first():
            raise AppError.conflict(DUPLICATE_NAME_MESSAGE)
