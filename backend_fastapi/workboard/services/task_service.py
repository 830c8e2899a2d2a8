from collections import Counter
from typing import Dict, List, Optional, Tuple
import logging
import uuid

from mongoengine.queryset.visitor import Q

from workboard.config.settings import settings
from workboard.core.errors import AppError
from workboard.db.database import delete_matching
from workboard.db.models.category_model_db import Category as CategoryDBModel
from workboard.db.models.member_model_db import Member as MemberDBModel
from workboard.db.models.task_model_db import Task as TaskDBModel
from workboard.db.models.user_model_db import User as UserDBModel
from workboard.db.models.workspace_model_db import Workspace as WorkspaceDBModel
from workboard.models.task_models import TaskCreate, TaskUpdate, TaskPositionUpdate, TaskStatusEnum, TaskPublic
from workboard.services.access_service import AccessService
from workboard.services.activity_service import ActivityService
from workboard.services.notification_service import NotificationDispatcher, Notification, TASK_ASSIGNED
from workboard.services.ordering import PositionManager, task_scope, subtask_scope, scope_of_task
from workboard.utils.timeutils import utcnow

logger = logging.getLogger(__name__)

# Larger than any real scope; clamped to "last" by PositionManager.move
END_OF_SCOPE = 2 ** 31


class TaskFilters:
    """Optional filters for listing the tasks of a workspace."""

    def __init__(self, category_id: Optional[uuid.UUID] = None, assignee_ids: Optional[List[uuid.UUID]] = None,
                 status: Optional[TaskStatusEnum] = None, priority=None, search: Optional[str] = None,
                 parent_task_id: Optional[uuid.UUID] = None):
        self.category_id = category_id
        self.assignee_ids = assignee_ids or []
        self.status = status
        self.priority = priority
        self.search = search.strip() if search else None
        self.parent_task_id = parent_task_id


class TaskService:
    def __init__(self, positions: PositionManager, access: AccessService, activity: ActivityService,
                 notifications: Optional[NotificationDispatcher] = None):
        self.positions = positions
        self.access = access
        self.activity = activity
        self.notifications = notifications

    # --- Reads ---

    def list_tasks(self, user: UserDBModel, workspace_id: Optional[uuid.UUID], filters: Optional[TaskFilters] = None) -> List[TaskPublic]:
        self.access.require_member(user.id, workspace_id)
        filters = filters or TaskFilters()

        query = TaskDBModel.objects(workspace=workspace_id)
        if filters.parent_task_id is not None:
            query = query.filter(parent_task=filters.parent_task_id)
        else:
            query = query.filter(parent_task=None)
        if filters.category_id is not None:
            query = query.filter(category=filters.category_id)
        if filters.assignee_ids:
            query = query.filter(assignees__in=filters.assignee_ids)
        if filters.status is not None:
            query = query.filter(status=filters.status)
        if filters.priority is not None:
            query = query.filter(priority=filters.priority)
        if filters.search:
            query = query.filter(Q(title__icontains=filters.search) | Q(description__icontains=filters.search))

        tasks = list(query)
        category_positions = {c.id: c.position for c in CategoryDBModel.objects(workspace=workspace_id).only('id', 'position')}
        # Board order: categories first, uncategorized last
        tasks.sort(key=lambda t: (category_positions.get(t.category_id, END_OF_SCOPE), t.position, t.created_at))
        return self._publish(tasks)

    def get_task(self, user: UserDBModel, task_id: uuid.UUID) -> TaskDBModel:
        task = self._load(task_id)
        self.access.require_member(user.id, task.workspace_id)
        return task

    def get_subtasks(self, user: UserDBModel, task_id: uuid.UUID) -> List[TaskPublic]:
        task = self.get_task(user, task_id)
        subtasks = list(TaskDBModel.objects(parent_task=task.id).order_by('position'))
        return self._publish(subtasks)

    def to_public(self, task: TaskDBModel) -> TaskPublic:
        return self._publish([task])[0]

    # --- Writes ---

    def create_task(self, user: UserDBModel, workspace_id: Optional[uuid.UUID], data: TaskCreate) -> TaskDBModel:
        workspace_id = data.workspace_id or workspace_id
        self.access.require_editor(user.id, workspace_id)
        workspace = WorkspaceDBModel.objects(id=workspace_id).first()
        if not workspace:
            raise AppError.not_found("Workspace not found")

        parent = None
        category = None
        if data.parent_task_id is not None:
            parent = TaskDBModel.objects(id=data.parent_task_id, workspace=workspace_id).first()
            if not parent:
                raise AppError.bad_request("Parent task not found in this workspace")
            if parent.parent_task_id is not None:
                raise AppError.bad_request("Subtasks cannot have their own subtasks")
        elif data.category_id is not None:
            category = self._category_in(workspace_id, data.category_id)

        assignees = self._assignees_in(workspace_id, data.assignee_ids)
        task = TaskDBModel(
            workspace=workspace,
            title=data.title,
            description=data.description,
            priority=data.priority,
            status=data.status,
            due_date=data.due_date,
            completed_at=utcnow() if data.status == TaskStatusEnum.COMPLETED else None,
            assignees=assignees,
            created_by=user,
        )
        scope = subtask_scope(parent) if parent is not None else task_scope(category)
        self.positions.append(task, scope)
        logger.info(f"Task {task.id} created in workspace {workspace_id} by {user.id}")

        self.activity.log(workspace_id, user.id, "created", "task", task.id, {"title": task.title})
        self._notify_assigned(user, task, assignees)
        return task

    def update_task(self, user: UserDBModel, task_id: uuid.UUID, data: TaskUpdate) -> TaskDBModel:
        task = self._load(task_id)
        self.access.require_editor(user.id, task.workspace_id)

        fields = data.model_fields_set
        if not fields:
            raise AppError.bad_request("No fields to update")
        if "title" in fields and data.title is None:
            raise AppError.bad_request("Task title is required")

        new_category = None
        moving = False
        if "category_id" in fields and data.category_id != task.category_id:
            if task.parent_task_id is not None:
                raise AppError.bad_request("Subtasks cannot be moved to a category")
            new_category = self._category_in(task.workspace_id, data.category_id) if data.category_id else None
            moving = True

        previous_assignees = set(task.assignee_ids)
        assignees = None
        if "assignee_ids" in fields:
            assignees = self._assignees_in(task.workspace_id, data.assignee_ids or [])

        def apply(doc: TaskDBModel) -> None:
            if "title" in fields:
                doc.title = data.title
            if "description" in fields:
                doc.description = data.description
            if "priority" in fields and data.priority is not None:
                doc.priority = data.priority
            if "status" in fields and data.status is not None and data.status != doc.status:
                doc.status = data.status
                # completed_at follows the transition into or out of "completed"
                doc.completed_at = utcnow() if data.status == TaskStatusEnum.COMPLETED else None
            if "due_date" in fields:
                doc.due_date = data.due_date
            if assignees is not None:
                doc.assignees = assignees

        if moving:
            self.positions.move(task, task_scope(new_category), END_OF_SCOPE, apply=apply)
        else:
            apply(task)
            task.save()

        self.activity.log(task.workspace_id, user.id, "updated", "task", task.id, {"fields": sorted(fields)})
        if assignees is not None:
            self._notify_assigned(user, task, [u for u in assignees if u.id not in previous_assignees])
        return task

    def update_task_position(self, user: UserDBModel, task_id: uuid.UUID, data: TaskPositionUpdate) -> TaskDBModel:
        task = self._load(task_id)
        self.access.require_editor(user.id, task.workspace_id)

        if task.parent_task_id is not None:
            if "category_id" in data.model_fields_set and data.category_id is not None:
                raise AppError.bad_request("Subtasks cannot be moved to a category")
            target = subtask_scope(task.parent_task)
        elif "category_id" in data.model_fields_set:
            category = self._category_in(task.workspace_id, data.category_id) if data.category_id else None
            target = task_scope(category)
        else:
            target = scope_of_task(task)

        self.positions.move(task, target, data.position)
        self.activity.log(task.workspace_id, user.id, "moved", "task", task.id,
                          {"categoryId": str(task.category_id) if task.category_id else None, "position": task.position})
        return task

    def delete_task(self, user: UserDBModel, task_id: uuid.UUID) -> None:
        task = self._load(task_id)
        self.access.require_editor(user.id, task.workspace_id)

        def delete_subtasks(session):
            deleted = delete_matching(TaskDBModel.objects(parent_task=task.id), session)
            if deleted:
                logger.info(f"Deleted {deleted} subtask(s) of task {task.id}")

        self.positions.remove(task, before_delete=delete_subtasks)
        self.activity.log(task.workspace_id, user.id, "deleted", "task", task_id, {"title": task.title})

    def reorder_tasks(self, user: UserDBModel, task_ids: List[uuid.UUID]) -> uuid.UUID:
        """Set task positions to the order of ``task_ids``; returns the workspace id."""
        if not task_ids:
            raise AppError.bad_request("taskIds array is required")
        unique_ids = list(dict.fromkeys(task_ids))
        found = list(TaskDBModel.objects(id__in=unique_ids))
        if len(found) != len(unique_ids):
            raise AppError.bad_request("Some task IDs are invalid")
        scopes = {scope_of_task(t) for t in found}
        if len(scopes) != 1 or len({t.workspace_id for t in found}) != 1:
            raise AppError.conflict("All tasks must belong to the same category")
        workspace_id = found[0].workspace_id
        self.access.require_editor(user.id, workspace_id)

        scope = scopes.pop()
        if not scope.is_ordered:
            raise AppError.bad_request("Uncategorized tasks cannot be reordered")
        self.positions.reorder(scope, unique_ids)
        self.activity.log(workspace_id, user.id, "reordered", "task", None, {"taskIds": [str(i) for i in unique_ids]})
        return workspace_id

    # --- Helpers ---

    def _load(self, task_id: uuid.UUID) -> TaskDBModel:
        task = TaskDBModel.objects(id=task_id).first()
        if not task:
            raise AppError.not_found("Task not found")
        return task

    def _category_in(self, workspace_id: uuid.UUID, category_id: uuid.UUID) -> CategoryDBModel:
        category = CategoryDBModel.objects(id=category_id, workspace=workspace_id).first()
        if not category:
            raise AppError.bad_request("Category not found in this workspace")
        return category

    def _assignees_in(self, workspace_id: uuid.UUID, user_ids: List[uuid.UUID]) -> List[UserDBModel]:
        user_ids = list(dict.fromkeys(user_ids))
        if not user_ids:
            return []
        member_count = MemberDBModel.objects(workspace=workspace_id, user__in=user_ids).count()
        if member_count != len(user_ids):
            raise AppError.bad_request("All assignees must be members of this workspace")
        users = {u.id: u for u in UserDBModel.objects(id__in=user_ids)}
        return [users[i] for i in user_ids if i in users]

    def _subtask_counts(self, tasks: List[TaskDBModel]) -> Tuple[Dict[uuid.UUID, int], Dict[uuid.UUID, int]]:
        ids = [t.id for t in tasks if t.parent_task_id is None]
        if not ids:
            return {}, {}
        totals, done = Counter(), Counter()
        for sub in TaskDBModel.objects(parent_task__in=ids).only('parent_task', 'status'):
            totals[sub.parent_task_id] += 1
            if sub.status == TaskStatusEnum.COMPLETED:
                done[sub.parent_task_id] += 1
        return totals, done

    def _publish(self, tasks: List[TaskDBModel]) -> List[TaskPublic]:
        totals, done = self._subtask_counts(tasks)
        return [t.to_pydantic(totals.get(t.id, 0), done.get(t.id, 0)) for t in tasks]

    def _notify_assigned(self, actor: UserDBModel, task: TaskDBModel, assignees: List[UserDBModel]) -> None:
        if self.notifications is None:
            return
        for assignee in assignees:
            if assignee.id == actor.id:
                continue
            self.notifications.submit(Notification(TASK_ASSIGNED, {
                "to": assignee.email,
                "taskTitle": task.title,
                "assignedBy": actor.name or actor.email,
                "workspaceId": str(task.workspace_id),
                "taskUrl": f"{settings.FRONTEND_URL}/tasks/{task.id}",
            }))
