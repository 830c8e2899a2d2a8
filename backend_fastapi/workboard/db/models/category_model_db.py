from mongoengine import StringField, ReferenceField, UUIDField, IntField
import uuid

from .base_model_db import TimestampedDocument, ref_id
from .user_model_db import User
from .workspace_model_db import Workspace
from workboard.models.category_models import DEFAULT_CATEGORY_COLOR

class Category(TimestampedDocument):
    meta = {
        'collection': 'categories',
        'indexes': [
            # Names are unique per workspace, ignoring case
            {'fields': ('workspace', 'name_key'), 'unique': True},
            ('workspace', 'position'),
        ],
        'ordering': ['position']
    }

    id = UUIDField(primary_key=True, default=uuid.uuid4)
    workspace = ReferenceField(Workspace, required=True)
    name = StringField(required=True, max_length=100)
    name_key = StringField(required=True) # lowercased name
    color = StringField(required=True, regex=r'^#[0-9A-Fa-f]{6}$', default=DEFAULT_CATEGORY_COLOR)
    position = IntField(required=True, min_value=0, default=0)
    created_by = ReferenceField(User)

    @property
    def workspace_id(self) -> uuid.UUID:
        return ref_id(self, 'workspace')

    def clean(self):
        if self.name:
            self.name_key = self.name.lower()
        super(Category, self).clean()

    def __str__(self):
        return f"{self.name} (#{self.position})"

    def to_pydantic(self, task_count: int = 0):
        from workboard.models.category_models import CategoryPublic # Local import
        creator = self.created_by
        return CategoryPublic(
            id=self.id,
            workspace_id=self.workspace_id,
            name=self.name,
            color=self.color,
            position=self.position,
            task_count=task_count,
            created_by=creator.id if creator else None,
            created_by_name=creator.name if creator else None,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
