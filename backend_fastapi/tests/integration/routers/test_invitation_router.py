import pytest
from fastapi.testclient import TestClient
from fastapi import status

from workboard.db.models.invitation_model_db import Invitation as InvitationDBModel
from workboard.db.models.member_model_db import Member as MemberDBModel
from workboard.db.models.onboarding_model_db import OnboardingProgress as OnboardingDBModel
from workboard.models.role_models import RoleEnum
from workboard.services.invitation_service import EXPIRED_INVITATION_MESSAGE, WRONG_EMAIL_MESSAGE

pytestmark = [pytest.mark.integration, pytest.mark.routers, pytest.mark.invitations]

INVITEE_EMAIL = "invitee@example.com"


@pytest.fixture
def invitation(client: TestClient, owner, workspace_id) -> dict:
    headers, _ = owner
    response = client.post(f"/workspaces/{workspace_id}/invite", headers=headers, json={"email": INVITEE_EMAIL, "role": "member"})
    assert response.status_code == status.HTTP_201_CREATED, response.text
    return response.json()["data"]["invitation"]


def test_invite_creates_pending_invitation(client: TestClient, owner, workspace_id):
    headers, _ = owner
    response = client.post(f"/workspaces/{workspace_id}/invite", headers=headers, json={"email": "  New.Person@Example.com ", "role": "viewer"})
    assert response.status_code == status.HTTP_201_CREATED
    body = response.json()
    assert body["message"] == "Invitation sent to new.person@example.com"
    invitation = body["data"]["invitation"]
    assert invitation["email"] == "new.person@example.com"
    assert invitation["role"] == "viewer"
    assert invitation["workspaceName"] == "Test Workspace"
    assert len(invitation["token"]) == 64

@pytest.mark.parametrize("payload,message", [
    ({}, "Email is required"),
    ({"email": "not-an-email"}, "Invalid email format"),
    ({"email": "x@example.com", "role": "owner"}, "Invalid role. Must be: admin, member, or viewer"),
])
def test_invite_validation(client: TestClient, owner, workspace_id, payload, message):
    headers, _ = owner
    response = client.post(f"/workspaces/{workspace_id}/invite", headers=headers, json=payload)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"] == message

def test_duplicate_pending_invitation(client: TestClient, owner, workspace_id, invitation):
    headers, _ = owner
    response = client.post(f"/workspaces/{workspace_id}/invite", headers=headers, json={"email": INVITEE_EMAIL.upper()})
    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["message"] == "An invitation is already pending for this email"
    assert InvitationDBModel.objects(workspace=workspace_id, email=INVITEE_EMAIL).count() == 1

def test_invite_existing_member(client: TestClient, owner, workspace_id, member_of):
    member_of("already@example.com")
    headers, _ = owner
    response = client.post(f"/workspaces/{workspace_id}/invite", headers=headers, json={"email": "already@example.com"})
    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["message"] == "User is already a member of this workspace"

@pytest.mark.parametrize("role", [RoleEnum.MEMBER, RoleEnum.VIEWER])
def test_only_admins_invite(client: TestClient, workspace_id, member_of, role):
    headers, _, _ = member_of(f"{role.value}@example.com", role)
    response = client.post(f"/workspaces/{workspace_id}/invite", headers=headers, json={"email": "friend@example.com"})
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert InvitationDBModel.objects(workspace=workspace_id).count() == 0

def test_invite_info_is_public(client: TestClient, invitation):
    response = client.get(f"/workspaces/invite-info/{invitation['token']}")
    assert response.status_code == status.HTTP_200_OK
    info = response.json()["data"]
    assert info["inviteStatus"] == "valid"
    assert info["workspaceName"] == "Test Workspace"
    assert info["inviterName"] == "Owner User"
    assert info["email"] == INVITEE_EMAIL

def test_invite_info_for_unknown_token(client: TestClient):
    response = client.get("/workspaces/invite-info/doesnotexist")
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["data"] == {"inviteStatus": "invalid"}

def test_accept_invitation_is_idempotent(client: TestClient, workspace_id, invitation, register_user):
    headers, user_id = register_user(INVITEE_EMAIL)

    first = client.post(f"/workspaces/accept-invite/{invitation['token']}", headers=headers)
    assert first.status_code == status.HTTP_200_OK
    body = first.json()
    assert body["message"] == 'Successfully joined "Test Workspace"'
    assert body["data"]["needsOnboarding"] is True
    assert body["data"]["role"] == "member"
    assert OnboardingDBModel.objects(workspace=workspace_id, user=user_id).count() == 1

    second = client.post(f"/workspaces/accept-invite/{invitation['token']}", headers=headers)
    assert second.status_code == status.HTTP_200_OK
    assert second.json()["message"] == "You are already a member of this workspace"
    assert second.json()["data"]["needsOnboarding"] is False

    assert MemberDBModel.objects(workspace=workspace_id, user=user_id).count() == 1
    stored = InvitationDBModel.objects(token=invitation["token"]).first()
    assert stored.accepted_at is not None
    info = client.get(f"/workspaces/invite-info/{invitation['token']}").json()["data"]
    assert info["inviteStatus"] == "accepted"

def test_accept_with_different_email(client: TestClient, workspace_id, invitation, register_user):
    headers, user_id = register_user("someone-else@example.com")
    response = client.post(f"/workspaces/accept-invite/{invitation['token']}", headers=headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["message"] == WRONG_EMAIL_MESSAGE
    assert MemberDBModel.objects(workspace=workspace_id, user=user_id).count() == 0

def test_accept_expired_invitation(client: TestClient, workspace_id, invitation, register_user):
    InvitationDBModel.objects(token=invitation["token"]).update(set__expires_at=InvitationDBModel.expiry_from_now(-1))
    headers, user_id = register_user(INVITEE_EMAIL)

    response = client.post(f"/workspaces/accept-invite/{invitation['token']}", headers=headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"] == EXPIRED_INVITATION_MESSAGE
    assert MemberDBModel.objects(workspace=workspace_id, user=user_id).count() == 0
    assert client.get(f"/workspaces/invite-info/{invitation['token']}").json()["data"]["inviteStatus"] == "expired"

def test_accept_requires_login(client: TestClient, invitation):
    response = client.post(f"/workspaces/accept-invite/{invitation['token']}")
    assert response.status_code == status.HTTP_401_UNAUTHORIZED

def test_list_and_cancel_invitations(client: TestClient, owner, workspace_id, invitation):
    headers, _ = owner
    response = client.get(f"/workspaces/{workspace_id}/invitations", headers=headers)
    assert response.status_code == status.HTTP_200_OK
    invitations = response.json()["data"]["invitations"]
    assert [i["id"] for i in invitations] == [invitation["id"]]

    response = client.delete(f"/workspaces/{workspace_id}/invitations/{invitation['id']}", headers=headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["message"] == "Invitation cancelled"
    assert client.get(f"/workspaces/{workspace_id}/invitations", headers=headers).json()["data"]["invitations"] == []
    assert client.get(f"/workspaces/invite-info/{invitation['token']}").status_code == status.HTTP_404_NOT_FOUND

def test_viewer_cannot_list_invitations(client: TestClient, workspace_id, invitation, member_of):
    headers, _, _ = member_of("viewer@example.com", RoleEnum.VIEWER)
    response = client.get(f"/workspaces/{workspace_id}/invitations", headers=headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN
