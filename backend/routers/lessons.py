from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Header, Query

from routers.deps import get_catalog, get_progress_service, persist_or_warn, resolve_user_id
from schemas.lesson import LessonCompleteRequest, LessonDetailResponse, LessonListResponse
from schemas.progress import CompletionResponse
from services.catalog import CatalogStore
from services.progress_service import ProgressService, lesson_health, lesson_xp

router = APIRouter(prefix="/api/lessons", tags=["lessons"])


@router.get("", response_model=LessonListResponse)
async def list_lessons(
    catalog: Annotated[CatalogStore, Depends(get_catalog)],
    category: Optional[str] = None,
    difficulty: Optional[int] = Query(None, ge=1, le=3),
):
    return LessonListResponse(lessons=catalog.list_lessons(category, difficulty))


@router.get("/{lesson_id}", response_model=LessonDetailResponse)
async def get_lesson(
    lesson_id: str,
    catalog: Annotated[CatalogStore, Depends(get_catalog)],
):
    return LessonDetailResponse(lesson=catalog.get_lesson(lesson_id))


@router.post("/{lesson_id}/complete", response_model=CompletionResponse)
async def complete_lesson(
    lesson_id: str,
    data: LessonCompleteRequest,
    catalog: Annotated[CatalogStore, Depends(get_catalog)],
    progress_service: Annotated[ProgressService, Depends(get_progress_service)],
    x_user_id: Annotated[Optional[str], Header(max_length=64)] = None,
):
    """Record a quiz result. A perfect score is worth 50 XP."""
    lesson = catalog.get_lesson(lesson_id)
    user_id = resolve_user_id(data.user_id, x_user_id)
    xp_earned = lesson_xp(data.score)

    progress, warning = await persist_or_warn(
        progress_service.mark_lesson_complete(
            user_id,
            lesson.id,
            xp_earned,
            health_score=lesson_health(data.score),
        )
    )
    return CompletionResponse(xp_earned=xp_earned, progress=progress, warning=warning)
