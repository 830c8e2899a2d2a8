from mongoengine import Document, ReferenceField, DateTimeField, UUIDField, StringField, DictField
import uuid

from .user_model_db import User
from .workspace_model_db import Workspace
from workboard.utils.timeutils import utcnow

class ActivityEntry(Document):
    meta = {
        'collection': 'activity_log',
        'indexes': [('workspace', '-created_at')]
    }

    id = UUIDField(primary_key=True, default=uuid.uuid4)
    workspace = ReferenceField(Workspace, required=True)
    user = ReferenceField(User)
    action = StringField(required=True) # created, updated, deleted, reordered, ...
    entity_type = StringField(required=True) # task, category, invitation, member
    entity_id = StringField()
    metadata = DictField()
    created_at = DateTimeField(default=utcnow)

    def to_pydantic(self):
        from workboard.models.activity_models import ActivityPublic # Local import
        user = self.user
        return ActivityPublic(
            id=self.id,
            action=self.action,
            entity_type=self.entity_type,
            entity_id=self.entity_id,
            metadata=dict(self.metadata or {}),
            user_id=user.id if isinstance(user, User) else None,
            user_name=user.name if isinstance(user, User) else None,
            created_at=self.created_at,
        )
