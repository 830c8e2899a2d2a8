"""Workspace access control.

Every operation that touches workspace data resolves the caller's membership
first. Reads need membership only; writes to categories and tasks need an
editor role (admin or member); membership and invitation management needs
admin.
"""

from typing import Iterable, Optional
import logging
import uuid

from workboard.core.errors import AppError
from workboard.db.models.member_model_db import Member as MemberDBModel
from workboard.models.role_models import RoleEnum, EDITOR_ROLES, ADMIN_ROLES, format_roles

logger = logging.getLogger(__name__)

NO_ACCESS_MESSAGE = "You do not have access to this workspace"
WORKSPACE_ID_REQUIRED_MESSAGE = "workspace_id is required"


def can_mutate(membership: Optional[MemberDBModel]) -> bool:
    return membership is not None and membership.role in EDITOR_ROLES


def is_admin(membership: Optional[MemberDBModel]) -> bool:
    return membership is not None and membership.role in ADMIN_ROLES


def insufficient_role(allowed: Iterable[RoleEnum], actual: RoleEnum) -> AppError:
    return AppError.forbidden(f"This action requires one of these roles: {format_roles(allowed)}. Your role: {actual.value}")


class AccessService:
    def resolve(self, user_id: uuid.UUID, workspace_id: uuid.UUID) -> Optional[MemberDBModel]:
        """Membership of ``user_id`` in ``workspace_id``, or None when not a member."""
        return MemberDBModel.objects(user=user_id, workspace=workspace_id).first()

    def require_member(self, user_id: uuid.UUID, workspace_id: Optional[uuid.UUID]) -> MemberDBModel:
        if workspace_id is None:
            raise AppError.bad_request(WORKSPACE_ID_REQUIRED_MESSAGE)
        membership = self.resolve(user_id, workspace_id)
        if membership is None:
            logger.info(f"User {user_id} denied access to workspace {workspace_id}")
            raise AppError.forbidden(NO_ACCESS_MESSAGE)
        return membership

    def require_role(self, user_id: uuid.UUID, workspace_id: Optional[uuid.UUID], allowed: Iterable[RoleEnum]) -> MemberDBModel:
        allowed = frozenset(allowed)
        membership = self.require_member(user_id, workspace_id)
        if membership.role not in allowed:
            raise insufficient_role(allowed, membership.role)
        return membership

    def require_editor(self, user_id: uuid.UUID, workspace_id: Optional[uuid.UUID]) -> MemberDBModel:
        membership = self.require_member(user_id, workspace_id)
        if not can_mutate(membership):
            raise insufficient_role(EDITOR_ROLES, membership.role)
        return membership

    def require_admin(self, user_id: uuid.UUID, workspace_id: Optional[uuid.UUID]) -> MemberDBModel:
        return self.require_role(user_id, workspace_id, ADMIN_ROLES)
