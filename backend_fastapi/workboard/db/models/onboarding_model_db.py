from mongoengine import ReferenceField, DateTimeField, UUIDField, IntField, ListField, StringField, BooleanField
import uuid

from .base_model_db import TimestampedDocument
from .user_model_db import User
from .workspace_model_db import Workspace

class OnboardingProgress(TimestampedDocument):
    meta = {
        'collection': 'workspace_onboarding_progress',
        'indexes': [
            {'fields': ('workspace', 'user'), 'unique': True},
        ]
    }

    id = UUIDField(primary_key=True, default=uuid.uuid4)
    workspace = ReferenceField(Workspace, required=True)
    user = ReferenceField(User, required=True)
    current_step = IntField(min_value=1, default=1)
    steps_completed = ListField(StringField())
    profile_updated = BooleanField(default=False)
    started_at = DateTimeField(null=True)
    skipped_at = DateTimeField(null=True)
    completed_at = DateTimeField(null=True)

    def to_pydantic(self, total_steps: int):
        from workboard.models.onboarding_models import OnboardingProgressPublic # Local import
        return OnboardingProgressPublic(
            current_step=min(self.current_step, total_steps),
            steps_completed=list(self.steps_completed),
            profile_updated=self.profile_updated,
            started_at=self.started_at,
            skipped_at=self.skipped_at,
            completed_at=self.completed_at,
        )
