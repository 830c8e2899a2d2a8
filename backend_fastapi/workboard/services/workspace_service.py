from typing import List, Optional, Tuple
import logging
import uuid

from pymongo.client_session import ClientSession

from workboard.core.errors import AppError
from workboard.db.database import Database, save_document, delete_document, delete_matching
from workboard.db.models.activity_model_db import ActivityEntry
from workboard.db.models.category_model_db import Category as CategoryDBModel
from workboard.db.models.invitation_model_db import Invitation as InvitationDBModel
from workboard.db.models.member_model_db import Member as MemberDBModel
from workboard.db.models.onboarding_model_db import OnboardingProgress as OnboardingDBModel
from workboard.db.models.task_model_db import Task as TaskDBModel
from workboard.db.models.user_model_db import User as UserDBModel
from workboard.db.models.workspace_model_db import Workspace as WorkspaceDBModel
from workboard.models.role_models import RoleEnum
from workboard.models.task_models import TaskStatusEnum
from workboard.models.workspace_models import WorkspaceCreate, WorkspaceUpdate, WorkspacePublic, DeletedCounts, WorkspaceUser
from workboard.services.access_service import AccessService, is_admin
from workboard.utils.timeutils import utcnow

logger = logging.getLogger(__name__)

# (name, color) in board order
DEFAULT_CATEGORIES: List[Tuple[str, str]] = [
    ("To Do", "#94A3B8"),
    ("In Progress", "#3B82F6"),
    ("Completed", "#22C55E"),
]

# (title, description, subtasks) seeded into "To Do"
GETTING_STARTED_TASKS = [
    ("Invite your team members", "Open workspace settings and send invitations to your teammates.", []),
    ("Customize your categories", "Rename, recolor or reorder the board columns to match how your team works.", []),
    ("Explore the board", "Get familiar with tasks and subtasks.", [
        "Drag a task to another column",
        "Open a task to edit its details",
        "Mark a subtask as done",
    ]),
]
COMPLETED_TASK_TITLE = "Create your first workspace"


class WorkspaceService:
    def __init__(self, db: Database, access: AccessService):
        self.db = db
        self.access = access

    def create_workspace(self, user: UserDBModel, data: WorkspaceCreate) -> WorkspaceDBModel:
        with self.db.transaction("create workspace") as session:
            workspace = save_document(WorkspaceDBModel(name=data.name, owner=user), session)
            save_document(MemberDBModel(user=user, workspace=workspace, role=RoleEnum.ADMIN, joined_at=utcnow()), session)
            self._seed_board(workspace, user, session)
        logger.info(f"Workspace {workspace.id} created by {user.id}")
        return workspace

    def _seed_board(self, workspace: WorkspaceDBModel, user: UserDBModel, session: Optional[ClientSession] = None) -> None:
        categories = []
        for position, (name, color) in enumerate(DEFAULT_CATEGORIES):
            category = CategoryDBModel(workspace=workspace, name=name, color=color, position=position, created_by=user)
            save_document(category, session)
            categories.append(category)
        todo, completed = categories[0], categories[-1]

        for position, (title, description, subtasks) in enumerate(GETTING_STARTED_TASKS):
            task = TaskDBModel(workspace=workspace, category=todo, title=title, description=description,
                               position=position, created_by=user)
            save_document(task, session)
            for sub_position, sub_title in enumerate(subtasks):
                save_document(TaskDBModel(workspace=workspace, parent_task=task, title=sub_title,
                                          position=sub_position, created_by=user), session)

        save_document(TaskDBModel(workspace=workspace, category=completed, title=COMPLETED_TASK_TITLE,
                                  status=TaskStatusEnum.COMPLETED, completed_at=utcnow(), position=0, created_by=user), session)

    def list_workspaces(self, user: UserDBModel) -> List[WorkspacePublic]:
        memberships = list(MemberDBModel.objects(user=user.id))
        roles = {m.workspace_id: m.role for m in memberships}
        workspaces = WorkspaceDBModel.objects(id__in=list(roles)).order_by('-created_at')
        return [w.to_pydantic(user_role=roles[w.id], member_count=self.member_count(w.id)) for w in workspaces]

    def get_workspace(self, user: UserDBModel, workspace_id: uuid.UUID) -> WorkspacePublic:
        membership = self.access.require_member(user.id, workspace_id)
        workspace = self._load(workspace_id)
        return workspace.to_pydantic(user_role=membership.role, member_count=self.member_count(workspace_id))

    def update_workspace(self, user: UserDBModel, workspace_id: uuid.UUID, data: WorkspaceUpdate) -> WorkspacePublic:
        membership = self.access.require_member(user.id, workspace_id)
        workspace = self._load(workspace_id)
        if not is_admin(membership):
            raise AppError.forbidden("Only workspace admins can update workspace settings")
        if "name" not in data.model_fields_set or data.name is None:
            raise AppError.bad_request("Workspace name is required")
        workspace.name = data.name
        workspace.save()
        return workspace.to_pydantic(user_role=membership.role, member_count=self.member_count(workspace_id))

    def delete_workspace(self, user: UserDBModel, workspace_id: uuid.UUID) -> DeletedCounts:
        self.access.require_member(user.id, workspace_id)
        workspace = self._load(workspace_id)
        if not workspace.is_owned_by(user.id):
            raise AppError.forbidden("Only the workspace owner can delete the workspace")

        with self.db.transaction(f"delete workspace {workspace_id}") as session:
            counts = DeletedCounts(
                members=MemberDBModel.objects(workspace=workspace_id).count(),
                tasks=TaskDBModel.objects(workspace=workspace_id).count(),
                categories=CategoryDBModel.objects(workspace=workspace_id).count(),
            )
            for model in (TaskDBModel, CategoryDBModel, InvitationDBModel, OnboardingDBModel, ActivityEntry, MemberDBModel):
                delete_matching(model.objects(workspace=workspace_id), session)
            delete_document(workspace, session)
        logger.info(f"Workspace {workspace_id} deleted by {user.id}: {counts.model_dump()}")
        return counts

    def workspace_users(self, user: UserDBModel, workspace_id: Optional[uuid.UUID]) -> List[WorkspaceUser]:
        """Members that tasks can be assigned to, by name."""
        self.access.require_member(user.id, workspace_id)
        users = []
        for member in MemberDBModel.objects(workspace=workspace_id):
            u = member.user
            users.append(WorkspaceUser(id=u.id, email=u.email, name=u.name, avatar_url=u.avatar_url,
                                       role=member.role, created_at=u.created_at))
        users.sort(key=lambda u: (u.name or u.email).lower())
        return users

    def member_count(self, workspace_id: uuid.UUID) -> int:
        return MemberDBModel.objects(workspace=workspace_id).count()

    def _load(self, workspace_id: uuid.UUID) -> WorkspaceDBModel:
        workspace = WorkspaceDBModel.objects(id=workspace_id).first()
        if not workspace:
            raise AppError.not_found("Workspace not found")
        return workspace
