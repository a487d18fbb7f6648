from routers.scenarios import router as scenarios_router
from routers.lessons import router as lessons_router
from routers.progress import router as progress_router
from routers.onboarding import router as onboarding_router
from routers.ai import router as ai_router

__all__ = [
    "scenarios_router",
    "lessons_router",
    "progress_router",
    "onboarding_router",
    "ai_router"
]
