import pytest
from unittest.mock import patch, MagicMock
import uuid

from workboard.core.errors import AppError
from workboard.db.models.invitation_model_db import Invitation as InvitationDBModel
from workboard.db.models.member_model_db import Member as MemberDBModel
from workboard.db.models.user_model_db import User as UserDBModel
from workboard.db.models.workspace_model_db import Workspace as WorkspaceDBModel
from workboard.models.invitation_models import InvitationCreate, InviteStatusEnum
from workboard.models.role_models import RoleEnum
from workboard.services.invitation_service import (
    InvitationService, INVALID_INVITATION_MESSAGE, EXPIRED_INVITATION_MESSAGE, WRONG_EMAIL_MESSAGE,
)
from workboard.services.notification_service import WORKSPACE_INVITE

pytestmark = [pytest.mark.unit, pytest.mark.services, pytest.mark.invitations]

@pytest.fixture
def mock_access() -> MagicMock:
    return MagicMock()

@pytest.fixture
def mock_notifications() -> MagicMock:
    return MagicMock()

@pytest.fixture
def mock_onboarding() -> MagicMock:
    return MagicMock()

@pytest.fixture
def invitation_service(mock_access, mock_notifications, mock_onboarding) -> InvitationService:
    # db.transaction() runs the block without a session, so saves go through Document.save
    db = MagicMock()
    db.transaction.return_value.__enter__.return_value = None
    return InvitationService(db, mock_access, MagicMock(), mock_notifications, mock_onboarding)

@pytest.fixture
def admin() -> UserDBModel:
    return UserDBModel(id=uuid.uuid4(), email="admin@example.com", name="Admin")

@pytest.fixture
def invitee() -> UserDBModel:
    return UserDBModel(id=uuid.uuid4(), email="newbie@example.com", name="Newbie")

@pytest.fixture
def workspace(admin) -> WorkspaceDBModel:
    return WorkspaceDBModel(id=uuid.uuid4(), name="Invite WS", owner=admin)

@pytest.fixture
def invitation(workspace, admin) -> InvitationDBModel:
    return InvitationDBModel(
        id=uuid.uuid4(), workspace=workspace, email="newbie@example.com", role=RoleEnum.VIEWER,
        invited_by=admin, expires_at=InvitationDBModel.expiry_from_now(7),
    )

# === create_invitation ===
@pytest.mark.parametrize("email,message", [
    (None, "Email is required"),
    ("   ", "Email is required"),
    ("not-an-email", "Invalid email format"),
])
@patch('workboard.services.invitation_service.WorkspaceDBModel.objects')
def test_create_invitation_validates_email(mock_workspace_objects, invitation_service, admin, workspace, email, message):
    mock_workspace_objects.return_value.first.return_value = workspace
    with pytest.raises(AppError) as exc:
        invitation_service.create_invitation(admin, workspace.id, InvitationCreate(email=email))
    assert exc.value.status_code == 400
    assert exc.value.message == message

@patch('workboard.services.invitation_service.MemberDBModel.objects')
@patch('workboard.services.invitation_service.UserDBModel.objects')
@patch('workboard.services.invitation_service.WorkspaceDBModel.objects')
def test_create_invitation_for_existing_member(mock_workspace_objects, mock_user_objects, mock_member_objects, invitation_service, admin, invitee, workspace):
    mock_workspace_objects.return_value.first.return_value = workspace
    mock_user_objects.return_value.first.return_value = invitee
    mock_member_objects.return_value.first.return_value = MemberDBModel(user=invitee, workspace=workspace)

    with pytest.raises(AppError) as exc:
        invitation_service.create_invitation(admin, workspace.id, InvitationCreate(email="Newbie@Example.com"))
    assert exc.value.status_code == 409
    assert exc.value.message == "User is already a member of this workspace"
    mock_user_objects.assert_called_once_with(email="newbie@example.com")

@patch('workboard.services.invitation_service.InvitationDBModel.objects')
@patch('workboard.services.invitation_service.UserDBModel.objects')
@patch('workboard.services.invitation_service.WorkspaceDBModel.objects')
def test_create_invitation_with_pending_one(mock_workspace_objects, mock_user_objects, mock_invitation_objects, invitation_service, admin, workspace, invitation):
    mock_workspace_objects.return_value.first.return_value = workspace
    mock_user_objects.return_value.first.return_value = None
    mock_invitation_objects.return_value.first.return_value = invitation

    with pytest.raises(AppError) as exc:
        invitation_service.create_invitation(admin, workspace.id, InvitationCreate(email="newbie@example.com"))
    assert exc.value.status_code == 409
    assert exc.value.message == "An invitation is already pending for this email"

@pytest.mark.parametrize("submitted", [True, False])
@patch.object(InvitationDBModel, 'save')
@patch('workboard.services.invitation_service.InvitationDBModel.objects')
@patch('workboard.services.invitation_service.UserDBModel.objects')
@patch('workboard.services.invitation_service.WorkspaceDBModel.objects')
def test_create_invitation_reports_delivery(mock_workspace_objects, mock_user_objects, mock_invitation_objects, mock_save,
                                            invitation_service, mock_notifications, admin, workspace, submitted):
    mock_workspace_objects.return_value.first.return_value = workspace
    mock_user_objects.return_value.first.return_value = None
    mock_invitation_objects.return_value.first.return_value = None
    mock_notifications.submit.return_value = submitted

    invitation, delivered = invitation_service.create_invitation(admin, workspace.id, InvitationCreate(email="new@example.com", role="viewer"))

    # The invitation stands whether or not the email was queued
    mock_save.assert_called_once()
    assert delivered is submitted
    assert invitation.email == "new@example.com"
    assert invitation.role == RoleEnum.VIEWER
    assert len(invitation.token) == 64
    notification = mock_notifications.submit.call_args.args[0]
    assert notification.kind == WORKSPACE_INVITE
    assert notification.payload["inviteUrl"].endswith(f"/invite/{invitation.token}")

def test_create_invitation_with_invalid_role():
    with pytest.raises(ValueError, match="Invalid role"):
        InvitationCreate(email="x@example.com", role="owner")

# === accept_invitation ===
@patch('workboard.services.invitation_service.InvitationDBModel.objects')
def test_accept_unknown_token(mock_invitation_objects, invitation_service, invitee):
    mock_invitation_objects.return_value.first.return_value = None
    with pytest.raises(AppError) as exc:
        invitation_service.accept_invitation(invitee, "nope")
    assert exc.value.status_code == 400
    assert exc.value.message == INVALID_INVITATION_MESSAGE

@patch('workboard.services.invitation_service.InvitationDBModel.objects')
def test_accept_with_other_email(mock_invitation_objects, invitation_service, admin, invitation):
    mock_invitation_objects.return_value.first.return_value = invitation
    with pytest.raises(AppError) as exc:
        invitation_service.accept_invitation(admin, invitation.token)
    assert exc.value.status_code == 403
    assert exc.value.message == WRONG_EMAIL_MESSAGE

@patch.object(InvitationDBModel, 'save')
@patch.object(MemberDBModel, 'save')
@patch('workboard.services.invitation_service.MemberDBModel.objects')
@patch('workboard.services.invitation_service.WorkspaceDBModel.objects')
@patch('workboard.services.invitation_service.InvitationDBModel.objects')
def test_accept_expired_invitation(mock_invitation_objects, mock_workspace_objects, mock_member_objects, mock_member_save, mock_invitation_save,
                                   invitation_service, invitee, workspace, invitation):
    invitation.expires_at = InvitationDBModel.expiry_from_now(-1)
    mock_invitation_objects.return_value.first.return_value = invitation
    mock_workspace_objects.return_value.first.return_value = workspace
    mock_member_objects.return_value.first.return_value = None

    with pytest.raises(AppError) as exc:
        invitation_service.accept_invitation(invitee, invitation.token)
    assert exc.value.status_code == 400
    assert exc.value.message == EXPIRED_INVITATION_MESSAGE
    mock_member_save.assert_not_called()
    mock_invitation_save.assert_not_called()

@patch.object(InvitationDBModel, 'save')
@patch.object(MemberDBModel, 'save')
@patch('workboard.services.invitation_service.MemberDBModel.objects')
@patch('workboard.services.invitation_service.WorkspaceDBModel.objects')
@patch('workboard.services.invitation_service.InvitationDBModel.objects')
def test_accept_invitation_joins_workspace(mock_invitation_objects, mock_workspace_objects, mock_member_objects, mock_member_save, mock_invitation_save,
                                           invitation_service, mock_onboarding, invitee, workspace, invitation):
    mock_invitation_objects.return_value.first.return_value = invitation
    mock_workspace_objects.return_value.first.return_value = workspace
    mock_member_objects.return_value.first.return_value = None

    data, message = invitation_service.accept_invitation(invitee, invitation.token)

    assert message == 'Successfully joined "Invite WS"'
    assert data.needs_onboarding is True
    assert data.role == RoleEnum.VIEWER
    assert invitation.accepted_at is not None
    mock_member_save.assert_called_once()
    mock_invitation_save.assert_called_once()
    mock_onboarding.init_for_member.assert_called_once_with(workspace.id, invitee.id)

@patch.object(MemberDBModel, 'save')
@patch('workboard.services.invitation_service.MemberDBModel.objects')
@patch('workboard.services.invitation_service.WorkspaceDBModel.objects')
@patch('workboard.services.invitation_service.InvitationDBModel.objects')
def test_accept_twice_is_idempotent(mock_invitation_objects, mock_workspace_objects, mock_member_objects, mock_member_save,
                                    invitation_service, mock_onboarding, invitee, workspace, invitation):
    invitation.accepted_at = InvitationDBModel.expiry_from_now(0)
    mock_invitation_objects.return_value.first.return_value = invitation
    mock_workspace_objects.return_value.first.return_value = workspace
    mock_member_objects.return_value.first.return_value = MemberDBModel(user=invitee, workspace=workspace, role=RoleEnum.VIEWER)

    data, message = invitation_service.accept_invitation(invitee, invitation.token)

    assert message == "You are already a member of this workspace"
    assert data.needs_onboarding is False
    mock_member_save.assert_not_called()
    mock_onboarding.init_for_member.assert_not_called()

@patch('workboard.services.invitation_service.MemberDBModel.objects')
@patch('workboard.services.invitation_service.WorkspaceDBModel.objects')
@patch('workboard.services.invitation_service.InvitationDBModel.objects')
def test_accepted_invitation_cannot_be_reused_by_non_member(mock_invitation_objects, mock_workspace_objects, mock_member_objects,
                                                            invitation_service, invitee, workspace, invitation):
    # Accepted, then the member left: the token is spent
    invitation.accepted_at = InvitationDBModel.expiry_from_now(0)
    mock_invitation_objects.return_value.first.return_value = invitation
    mock_workspace_objects.return_value.first.return_value = workspace
    mock_member_objects.return_value.first.return_value = None

    with pytest.raises(AppError) as exc:
        invitation_service.accept_invitation(invitee, invitation.token)
    assert exc.value.message == INVALID_INVITATION_MESSAGE

# === get_invite_info ===
@patch('workboard.services.invitation_service.InvitationDBModel.objects')
def test_invite_info_for_unknown_token(mock_invitation_objects, invitation_service):
    mock_invitation_objects.return_value.first.return_value = None
    with pytest.raises(AppError) as exc:
        invitation_service.get_invite_info("missing")
    assert exc.value.status_code == 404
    assert exc.value.data == {"inviteStatus": "invalid"}

@patch('workboard.services.invitation_service.WorkspaceDBModel.objects')
@patch('workboard.services.invitation_service.InvitationDBModel.objects')
def test_invite_info_reports_status(mock_invitation_objects, mock_workspace_objects, invitation_service, workspace, invitation):
    mock_invitation_objects.return_value.first.return_value = invitation
    mock_workspace_objects.return_value.first.return_value = workspace

    info = invitation_service.get_invite_info(invitation.token)
    assert info.invite_status == InviteStatusEnum.VALID
    assert info.workspace_name == "Invite WS"
    assert info.inviter_name == "Admin"

    invitation.expires_at = InvitationDBModel.expiry_from_now(-1)
    assert invitation_service.get_invite_info(invitation.token).invite_status == InviteStatusEnum.EXPIRED
