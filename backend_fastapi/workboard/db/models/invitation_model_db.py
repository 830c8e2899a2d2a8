from mongoengine import Document, StringField, ReferenceField, DateTimeField, UUIDField, EnumField, EmailField
import datetime
import secrets
import uuid

from .base_model_db import ref_id
from .user_model_db import User
from .workspace_model_db import Workspace
from workboard.models.role_models import RoleEnum
from workboard.models.invitation_models import InviteStatusEnum
from workboard.utils.timeutils import utcnow

def generate_invite_token() -> str:
    return secrets.token_hex(32)

class Invitation(Document):
    meta = {
        'collection': 'workspace_invitations',
        'indexes': [
            {'fields': ['token'], 'unique': True},
            ('workspace', 'email'),
        ]
    }

    id = UUIDField(primary_key=True, default=uuid.uuid4)
    workspace = ReferenceField(Workspace, required=True)
    email = EmailField(required=True) # lowercased by the service
    role = EnumField(RoleEnum, required=True, default=RoleEnum.MEMBER)
    token = StringField(required=True, default=generate_invite_token)
    invited_by = ReferenceField(User)
    expires_at = DateTimeField(required=True)
    accepted_at = DateTimeField(null=True)
    created_at = DateTimeField(default=utcnow)

    @classmethod
    def expiry_from_now(cls, days: int) -> datetime.datetime:
        return utcnow() + datetime.timedelta(days=days)

    @property
    def workspace_id(self) -> uuid.UUID:
        return ref_id(self, 'workspace')

    def is_expired(self, now: datetime.datetime = None) -> bool:
        return self.expires_at <= (now or utcnow())

    def is_pending(self, now: datetime.datetime = None) -> bool:
        return self.accepted_at is None and not self.is_expired(now)

    @property
    def status(self) -> InviteStatusEnum:
        if self.accepted_at is not None:
            return InviteStatusEnum.ACCEPTED
        if self.is_expired():
            return InviteStatusEnum.EXPIRED
        return InviteStatusEnum.VALID

    def __str__(self):
        return f"Invitation({self.email} -> {self.workspace_id}, {self.status.value})"

    def to_pydantic(self, include_token: bool = False, workspace_name: str = None):
        from workboard.models.invitation_models import InvitationPublic # Local import
        inviter = self.invited_by
        return InvitationPublic(
            id=self.id,
            email=self.email,
            role=self.role,
            token=self.token if include_token else None,
            expires_at=self.expires_at,
            created_at=self.created_at,
            workspace_name=workspace_name,
            invited_by_name=inviter.name if isinstance(inviter, User) else None,
        )
