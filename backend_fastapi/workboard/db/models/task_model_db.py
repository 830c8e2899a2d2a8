from mongoengine import StringField, ReferenceField, DateTimeField, DateField, UUIDField, EnumField, IntField, ListField
import uuid

from .base_model_db import TimestampedDocument, ref_id
from .user_model_db import User
from .workspace_model_db import Workspace
from .category_model_db import Category
from workboard.models.task_models import TaskStatusEnum, TaskPriorityEnum, TITLE_MAX_LENGTH

class Task(TimestampedDocument):
    meta = {
        'collection': 'tasks',
        'indexes': [
            'workspace',
            ('category', 'position'),
            ('parent_task', 'position'),
            'assignees',
            'status',
            'priority',
            'due_date'
        ]
    }

    id = UUIDField(primary_key=True, default=uuid.uuid4)
    workspace = ReferenceField(Workspace, required=True)
    category = ReferenceField(Category, null=True) # Uncategorized tasks are not ordered
    parent_task = ReferenceField('self', null=True) # Subtasks are ordered under their parent

    title = StringField(required=True, max_length=TITLE_MAX_LENGTH)
    description = StringField(null=True)
    status = EnumField(TaskStatusEnum, default=TaskStatusEnum.TODO)
    priority = EnumField(TaskPriorityEnum, default=TaskPriorityEnum.MEDIUM)
    due_date = DateField(null=True) # Calendar date, no time of day
    completed_at = DateTimeField(null=True)
    position = IntField(required=True, min_value=0, default=0)

    assignees = ListField(ReferenceField(User))
    created_by = ReferenceField(User)

    @property
    def workspace_id(self) -> uuid.UUID:
        return ref_id(self, 'workspace')

    @property
    def category_id(self):
        return ref_id(self, 'category')

    @property
    def parent_task_id(self):
        return ref_id(self, 'parent_task')

    @property
    def assignee_ids(self):
        return [getattr(a, 'id', a) for a in (self._data.get('assignees') or [])]

    def __str__(self):
        return f"{self.title} (#{self.position})"

    def to_pydantic(self, subtask_count: int = 0, completed_subtask_count: int = 0):
        from workboard.models.task_models import TaskPublic, TaskAssignee # Local import
        category = self.category if self.category_id else None
        creator = self.created_by
        return TaskPublic(
            id=self.id,
            workspace_id=self.workspace_id,
            title=self.title,
            description=self.description,
            category_id=self.category_id,
            category_name=category.name if category else None,
            category_color=category.color if category else None,
            assignees=[TaskAssignee(id=u.id, name=u.name, email=u.email) for u in self.assignees if isinstance(u, User)],
            priority=self.priority,
            status=self.status,
            due_date=self.due_date,
            completed_at=self.completed_at,
            position=self.position,
            parent_task_id=self.parent_task_id,
            subtask_count=subtask_count,
            completed_subtask_count=completed_subtask_count,
            created_by=creator.id if isinstance(creator, User) else None,
            created_by_name=creator.name if isinstance(creator, User) else None,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
