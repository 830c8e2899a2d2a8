"""Workspace invitations: issue, inspect, accept and cancel.

An invitation is pending until it is accepted or its ``expires_at`` passes.
Acceptance is idempotent for the invited user: a second submission of the
same token reports that the user is already a member and writes nothing.
"""

from typing import List, Optional, Tuple
import logging
import uuid

from email_validator import validate_email, EmailNotValidError
from mongoengine.errors import NotUniqueError

from workboard.config.settings import settings
from workboard.core.errors import AppError
from workboard.db.database import Database, save_document
from workboard.db.models.invitation_model_db import Invitation as InvitationDBModel
from workboard.db.models.member_model_db import Member as MemberDBModel
from workboard.db.models.user_model_db import User as UserDBModel
from workboard.db.models.workspace_model_db import Workspace as WorkspaceDBModel
from workboard.models.invitation_models import InvitationCreate, InviteInfo, InviteStatusEnum, AcceptInvitationData
from workboard.services.access_service import AccessService
from workboard.services.activity_service import ActivityService
from workboard.services.notification_service import NotificationDispatcher, Notification, WORKSPACE_INVITE
from workboard.services.onboarding_service import OnboardingService
from workboard.utils.timeutils import utcnow

logger = logging.getLogger(__name__)

INVALID_INVITATION_MESSAGE = "Invalid or expired invitation"
EXPIRED_INVITATION_MESSAGE = "This invitation has expired. Please ask the workspace admin to send a new invitation."
WRONG_EMAIL_MESSAGE = "This invitation was sent to a different email address"


class InvitationService:
    def __init__(self, db: Database, access: AccessService, activity: ActivityService,
                 notifications: Optional[NotificationDispatcher], onboarding: OnboardingService):
        self.db = db
        self.access = access
        self.activity = activity
        self.notifications = notifications
        self.onboarding = onboarding

    def create_invitation(self, user: UserDBModel, workspace_id: uuid.UUID, data: InvitationCreate) -> Tuple[InvitationDBModel, bool]:
        """Persist an invitation and queue its email.

        Returns the invitation and whether the email was handed off; the
        invitation stands either way.
        """
        self.access.require_admin(user.id, workspace_id)
        workspace = self._workspace(workspace_id)
        email = self._normalize_email(data.email)

        invitee = UserDBModel.objects(email=email).first()
        if invitee and MemberDBModel.objects(workspace=workspace_id, user=invitee.id).first():
            raise AppError.conflict("User is already a member of this workspace")
        pending = InvitationDBModel.objects(workspace=workspace_id, email=email, accepted_at=None, expires_at__gt=utcnow()).first()
        if pending:
            raise AppError.conflict("An invitation is already pending for this email")

        invitation = InvitationDBModel(
            workspace=workspace,
            email=email,
            role=data.role,
            invited_by=user,
            expires_at=InvitationDBModel.expiry_from_now(settings.INVITATION_EXPIRE_DAYS),
        )
        invitation.save()
        logger.info(f"Invitation {invitation.id} for {email} to workspace {workspace_id} created by {user.id}")
        self.activity.log(workspace_id, user.id, "invited", "invitation", invitation.id, {"email": email, "role": data.role.value})

        delivered = False
        if self.notifications is not None:
            delivered = self.notifications.submit(Notification(WORKSPACE_INVITE, {
                "to": email,
                "inviterName": user.name or user.email,
                "workspaceName": workspace.name,
                "role": data.role.value,
                "inviteUrl": f"{settings.FRONTEND_URL}/invite/{invitation.token}",
            }))
        if not delivered:
            logger.warning(f"Invitation email for {email} not queued; delivery pending")
        return invitation, delivered

    def accept_invitation(self, user: UserDBModel, token: str) -> Tuple[AcceptInvitationData, str]:
        invitation = InvitationDBModel.objects(token=token).first()
        if not invitation:
            raise AppError.bad_request(INVALID_INVITATION_MESSAGE)
        if invitation.email.lower() != (user.email or "").lower():
            raise AppError.forbidden(WRONG_EMAIL_MESSAGE)

        workspace = WorkspaceDBModel.objects(id=invitation.workspace_id).first()
        if not workspace:
            raise AppError.bad_request(INVALID_INVITATION_MESSAGE)
        existing = MemberDBModel.objects(workspace=workspace.id, user=user.id).first()
        if existing:
            return self._already_member(workspace, existing)

        if invitation.accepted_at is not None:
            raise AppError.bad_request(INVALID_INVITATION_MESSAGE)
        if invitation.is_expired():
            raise AppError.bad_request(EXPIRED_INVITATION_MESSAGE)

        try:
            with self.db.transaction(f"accept invitation {invitation.id}") as session:
                save_document(MemberDBModel(user=user, workspace=workspace, role=invitation.role, joined_at=utcnow()), session)
                invitation.accepted_at = utcnow()
                save_document(invitation, session)
        except NotUniqueError:
            # A concurrent accept of the same token won the insert
            existing = MemberDBModel.objects(workspace=workspace.id, user=user.id).first()
            if existing:
                return self._already_member(workspace, existing)
            raise

        logger.info(f"User {user.id} joined workspace {workspace.id} as {invitation.role.value}")
        self.onboarding.init_for_member(workspace.id, user.id)
        self.activity.log(workspace.id, user.id, "accepted", "invitation", invitation.id, {"role": invitation.role.value})

        data = AcceptInvitationData(workspace_id=workspace.id, workspace_name=workspace.name,
                                    role=invitation.role, needs_onboarding=True)
        return data, f'Successfully joined "{workspace.name}"'

    def get_invite_info(self, token: str) -> InviteInfo:
        invitation = InvitationDBModel.objects(token=token).first()
        if not invitation:
            raise AppError.not_found("Invitation not found", data={"inviteStatus": InviteStatusEnum.INVALID.value})
        workspace = WorkspaceDBModel.objects(id=invitation.workspace_id).first()
        inviter = invitation.invited_by
        return InviteInfo(
            workspace_name=workspace.name if workspace else None,
            inviter_name=inviter.name if isinstance(inviter, UserDBModel) else None,
            email=invitation.email,
            role=invitation.role,
            expires_at=invitation.expires_at,
            invite_status=invitation.status,
        )

    def list_invitations(self, user: UserDBModel, workspace_id: uuid.UUID) -> List[InvitationDBModel]:
        self.access.require_admin(user.id, workspace_id)
        self._workspace(workspace_id)
        return list(InvitationDBModel.objects(workspace=workspace_id, accepted_at=None, expires_at__gt=utcnow()).order_by('-created_at'))

    def cancel_invitation(self, user: UserDBModel, workspace_id: uuid.UUID, invitation_id: uuid.UUID) -> None:
        self.access.require_admin(user.id, workspace_id)
        self._workspace(workspace_id)
        invitation = InvitationDBModel.objects(id=invitation_id, workspace=workspace_id).first()
        if not invitation:
            raise AppError.not_found("Invitation not found")
        invitation.delete()
        logger.info(f"Invitation {invitation_id} cancelled by {user.id}")
        self.activity.log(workspace_id, user.id, "cancelled", "invitation", invitation_id, {"email": invitation.email})

    def _already_member(self, workspace: WorkspaceDBModel, membership: MemberDBModel) -> Tuple[AcceptInvitationData, str]:
        data = AcceptInvitationData(workspace_id=workspace.id, workspace_name=workspace.name,
                                    role=membership.role, needs_onboarding=False)
        return data, "You are already a member of this workspace"

    def _normalize_email(self, email: Optional[str]) -> str:
        email = (email or "").strip().lower()
        if not email:
            raise AppError.bad_request("Email is required")
        try:
            validate_email(email, check_deliverability=False)
        except EmailNotValidError:
            raise AppError.bad_request("Invalid email format")
        return email

    def _workspace(self, workspace_id: uuid.UUID) -> WorkspaceDBModel:
        workspace = WorkspaceDBModel.objects(id=workspace_id).first()
        if not workspace:
            raise AppError.not_found("Workspace not found")
        return workspace
