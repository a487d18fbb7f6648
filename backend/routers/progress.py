from typing import Annotated

from fastapi import APIRouter, Depends, Path

from routers.deps import get_progress_service, progress_response
from schemas.progress import ProgressEnvelope
from services.progress_service import ProgressService

router = APIRouter(prefix="/api/progress", tags=["progress"])


@router.get("/{user_id}", response_model=ProgressEnvelope)
async def get_progress(
    user_id: Annotated[str, Path(min_length=1, max_length=64)],
    progress_service: Annotated[ProgressService, Depends(get_progress_service)],
):
    """Current progress for a learner; new learners start at the defaults."""
    record = await progress_service.get_progress(user_id)
    return ProgressEnvelope(progress=progress_response(record))
