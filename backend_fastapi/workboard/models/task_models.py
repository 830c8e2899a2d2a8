from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import date, datetime
import uuid
from enum import Enum

from .common_models import ApiModel

class TaskStatusEnum(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

class TaskPriorityEnum(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

TITLE_MAX_LENGTH = 500

def _clean_title(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if not value:
        raise ValueError("Task title is required")
    if len(value) > TITLE_MAX_LENGTH:
        raise ValueError(f"Task title must be {TITLE_MAX_LENGTH} characters or less")
    return value

def _check_choice(value, enum_cls, message):
    if value is None or isinstance(value, enum_cls):
        return value
    if value not in {e.value for e in enum_cls}:
        raise ValueError(message)
    return value

PRIORITY_MESSAGE = "Invalid priority. Must be: low, medium, high, or urgent"
STATUS_MESSAGE = "Invalid status. Must be: todo, in_progress, or completed"

def _date_only(value):
    # Accept "YYYY-MM-DD" and full ISO datetimes; the time part is dropped.
    if isinstance(value, str) and "T" in value:
        return value.split("T")[0]
    if isinstance(value, datetime):
        return value.date()
    return value

class TaskCreate(BaseModel):
    title: Optional[str] = Field(default=None, validate_default=True)
    description: Optional[str] = None
    workspace_id: Optional[uuid.UUID] = None # Falls back to the query string
    category_id: Optional[uuid.UUID] = None
    parent_task_id: Optional[uuid.UUID] = None
    assignee_ids: List[uuid.UUID] = []
    priority: TaskPriorityEnum = TaskPriorityEnum.MEDIUM
    status: TaskStatusEnum = TaskStatusEnum.TODO
    due_date: Optional[date] = None

    @field_validator("title")
    @classmethod
    def check_title(cls, v):
        return _clean_title(v if v is not None else "")

    @field_validator("due_date", mode="before")
    @classmethod
    def strip_time(cls, v):
        return _date_only(v)

    @field_validator("priority", mode="before")
    @classmethod
    def check_priority(cls, v):
        return _check_choice(v, TaskPriorityEnum, PRIORITY_MESSAGE)

    @field_validator("status", mode="before")
    @classmethod
    def check_status(cls, v):
        return _check_choice(v, TaskStatusEnum, STATUS_MESSAGE)

class TaskUpdate(BaseModel):
    """Fields to change on a task; only the fields present in the request are applied."""
    title: Optional[str] = None
    description: Optional[str] = None
    category_id: Optional[uuid.UUID] = None
    assignee_ids: Optional[List[uuid.UUID]] = None
    priority: Optional[TaskPriorityEnum] = None
    status: Optional[TaskStatusEnum] = None
    due_date: Optional[date] = None

    @field_validator("title")
    @classmethod
    def check_title(cls, v):
        return _clean_title(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def strip_time(cls, v):
        return _date_only(v)

    @field_validator("priority", mode="before")
    @classmethod
    def check_priority(cls, v):
        return _check_choice(v, TaskPriorityEnum, PRIORITY_MESSAGE)

    @field_validator("status", mode="before")
    @classmethod
    def check_status(cls, v):
        return _check_choice(v, TaskStatusEnum, STATUS_MESSAGE)

class TaskPositionUpdate(BaseModel):
    position: int = Field(ge=0)
    # Absent means "stay in the current category"; explicit null means uncategorized.
    category_id: Optional[uuid.UUID] = None

class TaskReorder(BaseModel):
    task_ids: List[uuid.UUID] = Field(default_factory=list, alias="taskIds")

    model_config = {"populate_by_name": True}

class TaskAssignee(ApiModel):
    id: uuid.UUID
    name: Optional[str] = None
    email: str

class TaskPublic(ApiModel):
    id: uuid.UUID
    workspace_id: uuid.UUID
    title: str
    description: Optional[str] = None
    category_id: Optional[uuid.UUID] = None
    category_name: Optional[str] = None
    category_color: Optional[str] = None
    assignees: List[TaskAssignee] = []
    priority: TaskPriorityEnum
    status: TaskStatusEnum
    due_date: Optional[date] = None
    completed_at: Optional[datetime] = None
    position: int
    parent_task_id: Optional[uuid.UUID] = None
    subtask_count: int = 0
    completed_subtask_count: int = 0
    created_by: Optional[uuid.UUID] = None
    created_by_name: Optional[str] = None
    created_at: datetime
    updated_at: datetime

class TaskPositionPublic(ApiModel):
    id: uuid.UUID
    title: str
    category_id: Optional[uuid.UUID] = None
    position: int

class TaskData(ApiModel):
    task: TaskPublic

class TaskListData(ApiModel):
    tasks: List[TaskPublic]
    count: int

class SubtaskListData(ApiModel):
    subtasks: List[TaskPublic]
    count: int

class TaskPositionData(ApiModel):
    task: TaskPositionPublic
