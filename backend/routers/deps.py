import asyncio
import logging
import uuid
from typing import Awaitable, Optional

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from errors import PersistenceError
from schemas.progress import ProgressResponse, ProgressWarning
from services.catalog import CatalogStore
from services.onboarding import OnboardingService
from services.progress_service import ProgressService
from services.progress_store import ProgressRecord
from services.reflection import ReflectionGenerator

logger = logging.getLogger(__name__)

# Rate limiter: keyed by client IP
limiter = Limiter(key_func=get_remote_address)

ANONYMOUS_PREFIX = "anon-"


def get_catalog(request: Request) -> CatalogStore:
    return request.app.state.catalog


def get_progress_service(request: Request) -> ProgressService:
    return request.app.state.progress_service


def get_reflector(request: Request) -> ReflectionGenerator:
    return request.app.state.reflector


def get_onboarding_service(request: Request) -> OnboardingService:
    return request.app.state.onboarding_service


def resolve_user_id(body_user_id: Optional[str], header_user_id: Optional[str]) -> str:
    """Body userId wins, then the X-User-Id header, else a fresh anonymous id."""
    for candidate in (body_user_id, header_user_id):
        if candidate and candidate.strip():
            return candidate.strip()
    return f"{ANONYMOUS_PREFIX}{uuid.uuid4()}"


def progress_response(record: ProgressRecord) -> ProgressResponse:
    return ProgressResponse.model_validate(record)


async def persist_or_warn(update: Awaitable[ProgressRecord]) -> tuple[Optional[ProgressResponse], Optional[ProgressWarning]]:
    """Await a progress update; on storage failure keep going with a warning."""
    try:
        record = await update
    except PersistenceError as e:
        logger.error("Progress not saved: %s", e.message)
        return None, ProgressWarning(
            message="Your result was calculated but progress could not be saved. Please try again.",
        )
    return progress_response(record), None


async def profile_hint(onboarding: OnboardingService, user_id: str):
    """Stored onboarding profile for prompt tuning, or None."""
    if user_id.startswith(ANONYMOUS_PREFIX):
        return None
    try:
        return await asyncio.to_thread(onboarding.get_user, user_id)
    except PersistenceError:
        return None
