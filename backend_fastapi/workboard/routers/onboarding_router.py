from fastapi import APIRouter, Depends
import uuid

from workboard.db.models.user_model_db import User as UserDBModel
from workboard.dependencies import get_onboarding_service
from workboard.models.common_models import ApiResponse, ok
from workboard.models.onboarding_models import OnboardingProgressUpdate, OnboardingStatusData, OnboardingProgressData
from workboard.routers.auth_router import get_current_active_user
from workboard.services.onboarding_service import OnboardingService

router = APIRouter(prefix="/workspaces/{workspace_id}/onboarding", tags=["Onboarding"])

@router.get("", response_model=ApiResponse[OnboardingStatusData])
async def read_onboarding_status(
    workspace_id: uuid.UUID,
    current_user: UserDBModel = Depends(get_current_active_user),
    service: OnboardingService = Depends(get_onboarding_service),
):
    return ok(service.get_status(current_user, workspace_id))

@router.post("/start", response_model=ApiResponse[OnboardingProgressData])
async def start_onboarding(
    workspace_id: uuid.UUID,
    current_user: UserDBModel = Depends(get_current_active_user),
    service: OnboardingService = Depends(get_onboarding_service),
):
    return ok(OnboardingProgressData(progress=service.start(current_user, workspace_id)), "Onboarding started")

@router.put("/progress", response_model=ApiResponse[OnboardingProgressData])
async def update_onboarding_progress(
    workspace_id: uuid.UUID,
    progress_in: OnboardingProgressUpdate,
    current_user: UserDBModel = Depends(get_current_active_user),
    service: OnboardingService = Depends(get_onboarding_service),
):
    progress = service.update_progress(current_user, workspace_id, progress_in)
    return ok(OnboardingProgressData(progress=progress), "Progress updated")

@router.post("/complete", response_model=ApiResponse[OnboardingProgressData])
async def complete_onboarding(
    workspace_id: uuid.UUID,
    current_user: UserDBModel = Depends(get_current_active_user),
    service: OnboardingService = Depends(get_onboarding_service),
):
    return ok(OnboardingProgressData(progress=service.complete(current_user, workspace_id)), "Onboarding completed")

@router.post("/skip", response_model=ApiResponse[OnboardingProgressData])
async def skip_onboarding(
    workspace_id: uuid.UUID,
    current_user: UserDBModel = Depends(get_current_active_user),
    service: OnboardingService = Depends(get_onboarding_service),
):
    return ok(OnboardingProgressData(progress=service.skip(current_user, workspace_id)), "Onboarding skipped")
