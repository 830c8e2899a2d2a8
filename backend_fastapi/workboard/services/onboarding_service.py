from typing import Optional
import logging
import uuid

from workboard.core.errors import AppError
from workboard.db.models.base_model_db import as_ref, ref_id
from workboard.db.models.category_model_db import Category as CategoryDBModel
from workboard.db.models.invitation_model_db import Invitation as InvitationDBModel
from workboard.db.models.member_model_db import Member as MemberDBModel
from workboard.db.models.onboarding_model_db import OnboardingProgress as OnboardingDBModel
from workboard.db.models.task_model_db import Task as TaskDBModel
from workboard.db.models.user_model_db import User as UserDBModel
from workboard.db.models.workspace_model_db import Workspace as WorkspaceDBModel
from workboard.models.onboarding_models import (
    ONBOARDING_STEPS, TOTAL_STEPS, OnboardingProgressUpdate, OnboardingProgressPublic,
    OnboardingStatusData, OnboardingWorkspace, OnboardingInvitation, OnboardingStats,
)
from workboard.utils.timeutils import utcnow

logger = logging.getLogger(__name__)

NOT_A_MEMBER_MESSAGE = "You are not a member of this workspace"
INVALID_STEP_MESSAGE = f"Invalid step. Must be between 1 and {TOTAL_STEPS}"


class OnboardingService:
    """Per-member walkthrough state for a workspace."""

    def init_for_member(self, workspace_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        """Create empty progress for a new member. Best effort: failures are logged only."""
        try:
            if not OnboardingDBModel.objects(workspace=workspace_id, user=user_id).first():
                OnboardingDBModel(workspace=as_ref(WorkspaceDBModel, workspace_id), user=as_ref(UserDBModel, user_id)).save()
            return True
        except Exception as e:
            logger.error(f"Failed to initialize onboarding for user {user_id} in workspace {workspace_id}: {e}")
            return False

    def get_status(self, user: UserDBModel, workspace_id: uuid.UUID) -> OnboardingStatusData:
        workspace, membership = self._membership(user, workspace_id)
        progress = self._progress(workspace, user)
        owner = workspace.owner

        status = OnboardingStatusData(
            workspace=OnboardingWorkspace(id=workspace.id, name=workspace.name, owner_name=owner.name if owner else None),
            role=membership.role,
            progress=progress.to_pydantic(TOTAL_STEPS),
            steps=ONBOARDING_STEPS,
        )

        invitation = InvitationDBModel.objects(workspace=workspace_id, email=user.email, accepted_at__ne=None).order_by('-accepted_at').first()
        if invitation:
            inviter = invitation.invited_by
            status.invitation = OnboardingInvitation(
                inviter_name=inviter.name if isinstance(inviter, UserDBModel) else None,
                role=invitation.role,
                accepted_at=invitation.accepted_at,
            )

        # Extras for the walkthrough screens; the status is still useful without them
        try:
            owner_id = ref_id(workspace, 'owner')
            status.members = [m.to_pydantic(owner_id) for m in MemberDBModel.objects(workspace=workspace_id).order_by('joined_at')]
            status.stats = OnboardingStats(
                task_count=TaskDBModel.objects(workspace=workspace_id).count(),
                category_count=CategoryDBModel.objects(workspace=workspace_id).count(),
            )
        except Exception as e:
            logger.error(f"Could not load onboarding extras for workspace {workspace_id}: {e}")
            status.members = None
            status.stats = None
        return status

    def start(self, user: UserDBModel, workspace_id: uuid.UUID) -> OnboardingProgressPublic:
        workspace, _ = self._membership(user, workspace_id)
        progress = self._progress(workspace, user)
        progress.current_step = 1
        progress.steps_completed = []
        progress.started_at = utcnow()
        progress.skipped_at = None
        progress.completed_at = None
        progress.save()
        return progress.to_pydantic(TOTAL_STEPS)

    def update_progress(self, user: UserDBModel, workspace_id: uuid.UUID, data: OnboardingProgressUpdate) -> OnboardingProgressPublic:
        workspace, _ = self._membership(user, workspace_id)
        step = self._step_number(data)

        progress = self._progress(workspace, user)
        step_name = ONBOARDING_STEPS[step - 1]
        if step_name not in progress.steps_completed:
            progress.steps_completed.append(step_name)
        if step_name == "profile":
            progress.profile_updated = True
        progress.current_step = max(progress.current_step or 1, step + 1)
        if progress.started_at is None:
            progress.started_at = utcnow()
        progress.save()
        return progress.to_pydantic(TOTAL_STEPS)

    def complete(self, user: UserDBModel, workspace_id: uuid.UUID) -> OnboardingProgressPublic:
        workspace, _ = self._membership(user, workspace_id)
        progress = self._progress(workspace, user)
        progress.steps_completed = list(ONBOARDING_STEPS)
        progress.current_step = TOTAL_STEPS
        progress.completed_at = utcnow()
        progress.save()
        return progress.to_pydantic(TOTAL_STEPS)

    def skip(self, user: UserDBModel, workspace_id: uuid.UUID) -> OnboardingProgressPublic:
        workspace, _ = self._membership(user, workspace_id)
        progress = self._progress(workspace, user)
        progress.skipped_at = utcnow()
        progress.save()
        return progress.to_pydantic(TOTAL_STEPS)

    def _step_number(self, data: OnboardingProgressUpdate) -> int:
        if data.step is not None:
            if not 1 <= data.step <= TOTAL_STEPS:
                raise AppError.bad_request(INVALID_STEP_MESSAGE)
            return data.step
        if data.step_name in ONBOARDING_STEPS:
            return ONBOARDING_STEPS.index(data.step_name) + 1
        raise AppError.bad_request(INVALID_STEP_MESSAGE)

    def _membership(self, user: UserDBModel, workspace_id: uuid.UUID):
        # Membership first, so unknown ids look the same as foreign ones
        membership = MemberDBModel.objects(workspace=workspace_id, user=user.id).first()
        if not membership:
            raise AppError.forbidden(NOT_A_MEMBER_MESSAGE)
        workspace = WorkspaceDBModel.objects(id=workspace_id).first()
        if not workspace:
            raise AppError.not_found("Workspace not found")
        return workspace, membership

    def _progress(self, workspace: WorkspaceDBModel, user: UserDBModel) -> OnboardingDBModel:
        progress: Optional[OnboardingDBModel] = OnboardingDBModel.objects(workspace=workspace.id, user=user.id).first()
        if progress is None:
            progress = OnboardingDBModel(workspace=workspace, user=user)
        return progress
