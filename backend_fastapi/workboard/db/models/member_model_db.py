from mongoengine import ReferenceField, DateTimeField, UUIDField, EnumField
import uuid

from .base_model_db import TimestampedDocument, ref_id
from .user_model_db import User
from workboard.models.role_models import RoleEnum
from workboard.utils.timeutils import utcnow

class Member(TimestampedDocument):
    meta = {
        'collection': 'workspace_members',
        'indexes': [
            {'fields': ('workspace', 'user'), 'unique': True}, # A user can only be a member of a workspace once
            'user',
            'workspace'
        ]
    }

    id = UUIDField(primary_key=True, default=uuid.uuid4)
    user = ReferenceField(User, required=True)
    workspace = ReferenceField('Workspace', required=True)
    role = EnumField(RoleEnum, required=True, default=RoleEnum.MEMBER)
    joined_at = DateTimeField(default=utcnow)

    @property
    def user_id(self) -> uuid.UUID:
        return ref_id(self, 'user')

    @property
    def workspace_id(self) -> uuid.UUID:
        return ref_id(self, 'workspace')

    def __str__(self):
        return f"Member(user={self.user_id}, workspace={self.workspace_id}, role='{self.role.value}')"

    def to_pydantic(self, owner_id=None):
        from workboard.models.member_models import MemberResponse # Local import
        user = self.user
        return MemberResponse(
            member_id=self.id,
            user_id=user.id,
            role=self.role,
            joined_at=self.joined_at,
            name=user.name,
            email=user.email,
            avatar_url=user.avatar_url,
            is_owner=owner_id is not None and user.id == owner_id,
        )
