from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
import uuid

from .common_models import ApiModel
from .member_models import MemberResponse
from .role_models import RoleEnum

ONBOARDING_STEPS: List[str] = ["welcome", "profile", "tour", "roles", "getting-started"]
TOTAL_STEPS = len(ONBOARDING_STEPS)

class OnboardingProgressUpdate(BaseModel):
    step: Optional[int] = None
    step_name: Optional[str] = Field(default=None, alias="stepName")

    model_config = {"populate_by_name": True}

class OnboardingProgressPublic(ApiModel):
    current_step: int = 1
    steps_completed: List[str] = []
    profile_updated: bool = False
    started_at: Optional[datetime] = None
    skipped_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

class OnboardingWorkspace(ApiModel):
    id: uuid.UUID
    name: str
    owner_name: Optional[str] = None

class OnboardingInvitation(ApiModel):
    inviter_name: Optional[str] = None
    role: RoleEnum
    accepted_at: Optional[datetime] = None

class OnboardingStats(ApiModel):
    task_count: int
    category_count: int

class OnboardingStatusData(ApiModel):
    workspace: OnboardingWorkspace
    role: RoleEnum
    progress: OnboardingProgressPublic
    steps: List[str] = ONBOARDING_STEPS
    invitation: Optional[OnboardingInvitation] = None
    members: Optional[List[MemberResponse]] = None
    stats: Optional[OnboardingStats] = None

class OnboardingProgressData(ApiModel):
    progress: OnboardingProgressPublic
