from mongoengine import StringField, ReferenceField, UUIDField
import uuid

from .base_model_db import TimestampedDocument, ref_id
from .user_model_db import User

class Workspace(TimestampedDocument):
    meta = {
        'collection': 'workspaces',
        'indexes': ['owner']
    }
    id = UUIDField(primary_key=True, default=uuid.uuid4)
    name = StringField(required=True, max_length=100)
    owner = ReferenceField(User, required=True) # Implicit admin; cannot be demoted or removed

    def __str__(self):
        return self.name

    def is_owned_by(self, user_id: uuid.UUID) -> bool:
        # Compare ids without dereferencing the owner document
        return ref_id(self, "owner") == user_id

    def to_pydantic(self, user_role=None, member_count: int = 0):
        from workboard.models.workspace_models import WorkspacePublic # Local import
        owner = self.owner
        return WorkspacePublic(
            id=self.id,
            name=self.name,
            owner_id=owner.id,
            owner_name=owner.name,
            owner_email=owner.email,
            user_role=user_role,
            member_count=member_count,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
