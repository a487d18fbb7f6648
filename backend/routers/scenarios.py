import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Header, Query, Request

from config import get_settings
from routers.deps import (
    get_catalog,
    get_onboarding_service,
    get_progress_service,
    get_reflector,
    limiter,
    persist_or_warn,
    profile_hint,
    resolve_user_id,
)
from schemas.progress import CompletionResponse
from schemas.scenario import (
    DecisionRequest,
    DecisionResponse,
    ScenarioCompleteRequest,
    ScenarioDetailResponse,
    ScenarioListResponse,
)
from services.catalog import CatalogStore
from services.decision_engine import DecisionEngine, coerce_state
from services.onboarding import OnboardingService
from services.progress_service import SCENARIO_COMPLETION_XP, ProgressService, health_from_knowledge
from services.reflection import ReflectionGenerator

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/api/scenarios", tags=["scenarios"])


@router.get("", response_model=ScenarioListResponse)
async def list_scenarios(
    catalog: Annotated[CatalogStore, Depends(get_catalog)],
    category: Optional[str] = None,
    difficulty: Optional[int] = Query(None, ge=1, le=3),
):
    """List scenarios, optionally filtered by category and difficulty."""
    return ScenarioListResponse(scenarios=catalog.list_scenarios(category, difficulty))


@router.get("/{scenario_id}", response_model=ScenarioDetailResponse)
async def get_scenario(
    scenario_id: str,
    catalog: Annotated[CatalogStore, Depends(get_catalog)],
):
    return ScenarioDetailResponse(scenario=catalog.get_scenario(scenario_id))


@router.post("/{scenario_id}/decision", response_model=DecisionResponse)
@limiter.limit(settings.decision_rate_limit)
async def make_decision(
    request: Request,
    scenario_id: str,
    data: DecisionRequest,
    catalog: Annotated[CatalogStore, Depends(get_catalog)],
    progress_service: Annotated[ProgressService, Depends(get_progress_service)],
    reflector: Annotated[ReflectionGenerator, Depends(get_reflector)],
    onboarding: Annotated[OnboardingService, Depends(get_onboarding_service)],
    x_user_id: Annotated[Optional[str], Header(max_length=64)] = None,
):
    """Apply a choice to the client's state, reflect on it, and award XP."""
    scenario = catalog.get_scenario(scenario_id)
    outcome = DecisionEngine(scenario).decide(data.decision_point_id, data.choice_id, data.current_state)

    user_id = resolve_user_id(data.user_id, x_user_id)
    reflection = await reflector.reflect(
        scenario.title,
        outcome.decision_point.prompt,
        outcome.choice.text,
        outcome.delta,
        profile=await profile_hint(onboarding, user_id),
    )

    progress, warning = await persist_or_warn(progress_service.add_xp(user_id, outcome.xp_earned))

    return DecisionResponse(
        new_state=outcome.new_state,
        ai_reflection=reflection.text,
        reflection_source=reflection.source,
        xp_earned=outcome.xp_earned,
        progress=progress,
        warning=warning,
    )


@router.post("/{scenario_id}/complete", response_model=CompletionResponse)
async def complete_scenario(
    scenario_id: str,
    data: ScenarioCompleteRequest,
    catalog: Annotated[CatalogStore, Depends(get_catalog)],
    progress_service: Annotated[ProgressService, Depends(get_progress_service)],
    x_user_id: Annotated[Optional[str], Header(max_length=64)] = None,
):
    """Award the completion bonus and recompute the financial-health score."""
    scenario = catalog.get_scenario(scenario_id)
    final_state = coerce_state(data.final_state)
    user_id = resolve_user_id(data.user_id, x_user_id)

    progress, warning = await persist_or_warn(
        progress_service.mark_scenario_complete(
            user_id,
            scenario.id,
            SCENARIO_COMPLETION_XP,
            health_score=health_from_knowledge(final_state.financial_knowledge),
        )
    )
    return CompletionResponse(xp_earned=SCENARIO_COMPLETION_XP, progress=progress, warning=warning)
