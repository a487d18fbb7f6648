from typing import Annotated

from fastapi import APIRouter, Depends, Request

from config import get_settings
from routers.deps import get_catalog, get_reflector, limiter
from schemas.ai import (
    ExplainRequest,
    ExplainResponse,
    ReflectRequest,
    ReflectResponse,
    WealthPoint,
    WealthRequest,
    WealthResponse,
)
from services.catalog import CatalogStore
from services.decision_engine import DecisionEngine, combined_delta
from services.reflection import ReflectionGenerator
from services.wealth import project_wealth

settings = get_settings()

router = APIRouter(prefix="/api/ai", tags=["ai"])


@router.post("/explain", response_model=ExplainResponse)
@limiter.limit(settings.ai_rate_limit)
async def explain_concept(
    request: Request,
    data: ExplainRequest,
    reflector: Annotated[ReflectionGenerator, Depends(get_reflector)],
):
    result = await reflector.explain_concept(data.concept, data.context, data.user_profile)
    return ExplainResponse(explanation=result.text, source=result.source)


@router.post("/simulate-wealth", response_model=WealthResponse)
@limiter.limit(settings.ai_rate_limit)
async def simulate_wealth(
    request: Request,
    data: WealthRequest,
    reflector: Annotated[ReflectionGenerator, Depends(get_reflector)],
):
    """Project savings growth year by year and explain the result."""
    data_points, summary = project_wealth(
        data.initial_amount, data.monthly_contribution, data.annual_return, data.years
    )
    result = await reflector.explain_wealth(summary, data.user_profile)
    return WealthResponse(
        data_points=[WealthPoint(**p) for p in data_points],
        final_value=summary.final_value,
        total_contributions=summary.total_contributions,
        gains=summary.gains,
        explanation=result.text,
        source=result.source,
    )


@router.post("/scenarios/{scenario_id}/reflect", response_model=ReflectResponse)
@limiter.limit(settings.ai_rate_limit)
async def reflect_on_choice(
    request: Request,
    scenario_id: str,
    data: ReflectRequest,
    catalog: Annotated[CatalogStore, Depends(get_catalog)],
    reflector: Annotated[ReflectionGenerator, Depends(get_reflector)],
):
    """Reflection text for a choice without applying it or awarding XP."""
    scenario = catalog.get_scenario(scenario_id)
    decision_point, choice = DecisionEngine(scenario).find_choice(data.decision_point_id, data.choice_id)
    result = await reflector.reflect(
        scenario.title,
        decision_point.prompt,
        choice.text,
        combined_delta(choice),
        profile=data.user_profile,
    )
    return ReflectResponse(reflection=result.text, source=result.source)
