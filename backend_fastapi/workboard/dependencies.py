"""FastAPI providers for the shared handles and the services built on them.

The lifespan in ``workboard.main`` owns the MongoDB handle, the redis store
and the notification dispatcher and keeps them on ``app.state``. Services are
cheap and are built per request from those handles.
"""

from fastapi import Depends, Request

from workboard.config.settings import Settings
from workboard.db.database import Database
from workboard.db.redis_db import RedisStore
from workboard.services.access_service import AccessService
from workboard.services.activity_service import ActivityService
from workboard.services.auth_service import AuthService
from workboard.services.category_service import CategoryService
from workboard.services.invitation_service import InvitationService
from workboard.services.member_service import MemberService
from workboard.services.notification_service import NotificationDispatcher
from workboard.services.onboarding_service import OnboardingService
from workboard.services.ordering import PositionManager
from workboard.services.task_service import TaskService
from workboard.services.workspace_service import WorkspaceService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings

def get_database(request: Request) -> Database:
    return request.app.state.db

def get_redis_store(request: Request) -> RedisStore:
    return request.app.state.redis

def get_dispatcher(request: Request) -> NotificationDispatcher:
    return request.app.state.notifications

def get_access_service() -> AccessService:
    return AccessService()

def get_activity_service() -> ActivityService:
    return ActivityService()

def get_onboarding_service() -> OnboardingService:
    return OnboardingService()

def get_auth_service(store: RedisStore = Depends(get_redis_store)) -> AuthService:
    return AuthService(store)

def get_position_manager(
    db: Database = Depends(get_database),
    store: RedisStore = Depends(get_redis_store),
    settings: Settings = Depends(get_settings),
) -> PositionManager:
    return PositionManager(db, locks=store if settings.POSITION_LOCKS_ENABLED else None)

def get_category_service(
    positions: PositionManager = Depends(get_position_manager),
    access: AccessService = Depends(get_access_service),
    activity: ActivityService = Depends(get_activity_service),
) -> CategoryService:
    return CategoryService(positions, access, activity)

def get_task_service(
    positions: PositionManager = Depends(get_position_manager),
    access: AccessService = Depends(get_access_service),
    activity: ActivityService = Depends(get_activity_service),
    notifications: NotificationDispatcher = Depends(get_dispatcher),
) -> TaskService:
    return TaskService(positions, access, activity, notifications)

def get_workspace_service(
    db: Database = Depends(get_database),
    access: AccessService = Depends(get_access_service),
) -> WorkspaceService:
    return WorkspaceService(db, access)

def get_member_service(
    access: AccessService = Depends(get_access_service),
    activity: ActivityService = Depends(get_activity_service),
) -> MemberService:
    return MemberService(access, activity)

def get_invitation_service(
    db: Database = Depends(get_database),
    access: AccessService = Depends(get_access_service),
    activity: ActivityService = Depends(get_activity_service),
    notifications: NotificationDispatcher = Depends(get_dispatcher),
    onboarding: OnboardingService = Depends(get_onboarding_service),
) -> InvitationService:
    return InvitationService(db, access, activity, notifications, onboarding)
