from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import datetime
import re
import uuid

from .common_models import ApiModel

DEFAULT_CATEGORY_COLOR = "#3B82F6"
NAME_MAX_LENGTH = 100
COLOR_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")
INVALID_COLOR_MESSAGE = "Invalid color format. Must be hex color (e.g., #3B82F6)"

def _clean_name(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if not value:
        raise ValueError("Category name is required")
    if len(value) > NAME_MAX_LENGTH:
        raise ValueError(f"Category name must be {NAME_MAX_LENGTH} characters or less")
    return value

def _check_color(value: Optional[str]) -> Optional[str]:
    if value is not None and not COLOR_PATTERN.match(value):
        raise ValueError(INVALID_COLOR_MESSAGE)
    return value

class CategoryCreate(BaseModel):
    name: Optional[str] = Field(default=None, validate_default=True)
    color: str = DEFAULT_CATEGORY_COLOR
    workspace_id: Optional[uuid.UUID] = None # Falls back to the query string

    @field_validator("name")
    @classmethod
    def check_name(cls, v):
        return _clean_name(v if v is not None else "")

    @field_validator("color")
    @classmethod
    def check_color(cls, v):
        return _check_color(v)

class CategoryUpdate(BaseModel):
    name: Optional[str] = None
    color: Optional[str] = None
    position: Optional[int] = Field(default=None, ge=0)

    @field_validator("name")
    @classmethod
    def check_name(cls, v):
        return _clean_name(v)

    @field_validator("color")
    @classmethod
    def check_color(cls, v):
        return _check_color(v)

class CategoryReorder(BaseModel):
    category_ids: List[uuid.UUID] = Field(default_factory=list, alias="categoryIds")
    workspace_id: Optional[uuid.UUID] = None

    model_config = {"populate_by_name": True}

class CategoryPublic(ApiModel):
    id: uuid.UUID
    workspace_id: uuid.UUID
    name: str
    color: str
    position: int
    task_count: int = 0
    created_by: Optional[uuid.UUID] = None
    created_by_name: Optional[str] = None
    created_at: datetime
    updated_at: datetime

class CategoryData(ApiModel):
    category: CategoryPublic

class CategoryListData(ApiModel):
    categories: List[CategoryPublic]
