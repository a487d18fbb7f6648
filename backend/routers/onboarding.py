import asyncio
from typing import Annotated

from fastapi import APIRouter, Depends

from routers.deps import get_onboarding_service
from schemas.user import OnboardingRequest, OnboardingResponse
from services.onboarding import OnboardingService

router = APIRouter(prefix="/api/onboarding", tags=["onboarding"])


@router.post("", response_model=OnboardingResponse)
async def complete_onboarding(
    data: OnboardingRequest,
    onboarding: Annotated[OnboardingService, Depends(get_onboarding_service)],
):
    """Create a learner profile and starter progress; return recommendations."""
    return await asyncio.to_thread(onboarding.complete, data)
