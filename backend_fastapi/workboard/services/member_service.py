from typing import List
import logging
import uuid

from workboard.core.errors import AppError
from workboard.db.models.base_model_db import ref_id
from workboard.db.models.member_model_db import Member as MemberDBModel
from workboard.db.models.onboarding_model_db import OnboardingProgress as OnboardingDBModel
from workboard.db.models.user_model_db import User as UserDBModel
from workboard.db.models.workspace_model_db import Workspace as WorkspaceDBModel
from workboard.models.member_models import MemberResponse
from workboard.models.role_models import RoleEnum
from workboard.services.access_service import AccessService, is_admin
from workboard.services.activity_service import ActivityService

logger = logging.getLogger(__name__)

OWNER_ROLE_MESSAGE = "Cannot change workspace owner's role"
OWNER_REMOVAL_MESSAGE = "Cannot remove workspace owner. Transfer ownership first or delete the workspace."


class MemberService:
    def __init__(self, access: AccessService, activity: ActivityService):
        self.access = access
        self.activity = activity

    def list_members(self, user: UserDBModel, workspace_id: uuid.UUID) -> List[MemberResponse]:
        self.access.require_member(user.id, workspace_id)
        workspace = self._workspace(workspace_id)
        owner_id = ref_id(workspace, 'owner')
        members = [m.to_pydantic(owner_id) for m in MemberDBModel.objects(workspace=workspace_id).order_by('joined_at')]
        # Owner first, then by join date
        members.sort(key=lambda m: not m.is_owner)
        return members

    def update_member_role(self, user: UserDBModel, workspace_id: uuid.UUID, member_id: uuid.UUID, role: RoleEnum) -> MemberDBModel:
        self.access.require_admin(user.id, workspace_id)
        workspace = self._workspace(workspace_id)
        member = self._member(workspace_id, member_id)
        if workspace.is_owned_by(member.user_id):
            raise AppError.bad_request(OWNER_ROLE_MESSAGE)

        previous = member.role
        member.role = role
        member.save()
        logger.info(f"Member {member_id} of workspace {workspace_id}: {previous.value} -> {role.value}")
        self.activity.log(workspace_id, user.id, "role_changed", "member", member_id,
                          {"userId": str(member.user_id), "from": previous.value, "to": role.value})
        return member

    def remove_member(self, user: UserDBModel, workspace_id: uuid.UUID, member_id: uuid.UUID) -> bool:
        """Remove a membership; returns True when the caller removed themselves."""
        membership = self.access.require_member(user.id, workspace_id)
        workspace = self._workspace(workspace_id)
        member = self._member(workspace_id, member_id)

        if workspace.is_owned_by(member.user_id):
            raise AppError.bad_request(OWNER_REMOVAL_MESSAGE)
        is_self = member.user_id == user.id
        if not is_self and not is_admin(membership):
            raise AppError.forbidden("Only workspace admins can remove other members")

        OnboardingDBModel.objects(workspace=workspace_id, user=member.user_id).delete()
        member.delete()
        logger.info(f"Member {member_id} removed from workspace {workspace_id} by {user.id}")
        self.activity.log(workspace_id, user.id, "left" if is_self else "removed", "member", member_id,
                          {"userId": str(member.user_id)})
        return is_self

    def _workspace(self, workspace_id: uuid.UUID) -> WorkspaceDBModel:
        workspace = WorkspaceDBModel.objects(id=workspace_id).first()
        if not workspace:
            raise AppError.not_found("Workspace not found")
        return workspace

    def _member(self, workspace_id: uuid.UUID, member_id: uuid.UUID) -> MemberDBModel:
        member = MemberDBModel.objects(id=member_id, workspace=workspace_id).first()
        if not member:
            raise AppError.not_found("Member not found")
        return member
