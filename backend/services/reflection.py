"""
Gemini-backed reflection and explanation text with deterministic fallbacks.

Every public method returns either ``Generated(text)`` or ``Fallback(text)``
and never raises: an unconfigured client, an API error, an empty answer or a
timeout all produce the templated fallback for that call only. The next call
tries Gemini again.
"""
import asyncio
import hashlib
import logging
from dataclasses import dataclass
from typing import ClassVar, Optional, Union

from cachetools import TTLCache
from google import genai

from config import Settings, get_settings
from errors import UpstreamUnavailable
from schemas.scenario import ImpactDelta

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Generated:
    text: str
    source: ClassVar[str] = "generated"


@dataclass(frozen=True)
class Fallback:
    text: str
    reason: str = "unavailable"
    source: ClassVar[str] = "fallback"


ReflectionResult = Union[Generated, Fallback]


@dataclass(frozen=True)
class WealthSummary:
    initial_amount: float
    monthly_contribution: float
    annual_return: float
    years: int
    final_value: float
    total_contributions: float
    gains: float


# ── Prompt building ──────────────────────────────────────────────────

LEVEL_GUIDANCE = {
    "beginner": "Use plain, everyday words and skip jargon. Lean on analogies and real-life examples.",
    "intermediate": "Financial terms are fine if you define them in a few words. Keep the insights practical.",
    "advanced": "Technical terms are welcome; go deeper into the trade-offs.",
}
STYLE_GUIDANCE = {
    "visual": "Favor concrete comparisons the learner can picture.",
    "textual": "Give a clearly structured written explanation.",
    "interactive": "Keep it engaging and tie it to situations the learner might act on.",
}


def style_guidance(profile=None) -> str:
    level = getattr(profile, "experience_level", None)
    style = getattr(profile, "learning_style", None)
    return f"{LEVEL_GUIDANCE.get(level, LEVEL_GUIDANCE['advanced'])} {STYLE_GUIDANCE.get(style, STYLE_GUIDANCE['interactive'])}"


def describe_change(change: float, label: str) -> str:
    if change > 0:
        return f"{label} increased by {abs(change):.1f}"
    if change < 0:
        return f"{label} decreased by {abs(change):.1f}"
    return f"{label} stayed the same"


def reflection_prompt(scenario_title: str, decision_prompt: str, choice_text: str, delta: ImpactDelta, profile=None) -> str:
    impacts = "\n".join(
        f"- {describe_change(value, label)}"
        for value, label in (
            (delta.savings_change, "Savings"),
            (delta.debt_change, "Debt"),
            (delta.expense_change, "Monthly expenses"),
            (delta.stress_change, "Stress level"),
            (delta.knowledge_change, "Financial knowledge"),
        )
    )
    return (
        "You are a supportive personal-finance coach reflecting on a learner's choice in a "
        "practice scenario. Be encouraging and never judgmental.\n\n"
        f"{style_guidance(profile)}\n\n"
        f"Scenario: {scenario_title}\n"
        f"Decision: {decision_prompt}\n"
        f"Choice made: {choice_text}\n\n"
        f"Impact:\n{impacts}\n\n"
        "In 2-3 short paragraphs: acknowledge the choice, explain its short- and long-term "
        "effects in accessible terms, name one lesson to take away, and end with an "
        "actionable tip for next time."
    )


def concept_prompt(concept: str, context: Optional[str] = None, profile=None) -> str:
    context_line = f"Context: {context}\n" if context else ""
    return (
        "You are a friendly financial-education assistant. Your goal is to make personal "
        "finance approachable for people who were never taught it.\n\n"
        f"{style_guidance(profile)}\n\n"
        f"Concept to explain: {concept}\n{context_line}\n"
        "In 2-3 paragraphs: explain the concept plainly, give a relatable example, connect it "
        "to an everyday money decision, and keep the tone positive and inclusive."
    )


def wealth_prompt(summary: WealthSummary, profile=None) -> str:
    return (
        "You are a friendly financial-education assistant explaining a savings projection.\n\n"
        f"{style_guidance(profile)}\n\n"
        "Projection:\n"
        f"- Initial amount: ${summary.initial_amount:,.2f}\n"
        f"- Monthly contribution: ${summary.monthly_contribution:,.2f}\n"
        f"- Annual return: {summary.annual_return}%\n"
        f"- Years: {summary.years}\n"
        f"- Final value: ${summary.final_value:,.2f}\n"
        f"- Total contributed: ${summary.total_contributions:,.2f}\n"
        f"- Growth from returns: ${summary.gains:,.2f}\n\n"
        "In 2-3 paragraphs: show how compounding produced the growth, what the numbers mean "
        "in practice, and why time and consistency matter. Make no assumptions about the "
        "learner's current finances."
    )


# ── Fallback templates ───────────────────────────────────────────────

def fallback_reflection(choice_text: str) -> str:
    choice_text = (choice_text or "").strip() or "an option"
    return (
        f"You chose: {choice_text}. This decision will have both short-term and long-term "
        "impacts on your financial situation."
    )


def fallback_concept(concept: str) -> str:
    return (
        f"Here's where to start with {concept}: look for it in the lessons section, where it "
        "is covered step by step. Personalized AI explanations appear here once the text "
        "generator is configured."
    )


def fallback_wealth(summary: WealthSummary) -> str:
    return (
        f"Starting with ${summary.initial_amount:,.2f} and adding ${summary.monthly_contribution:,.2f} "
        f"each month at {summary.annual_return}% a year for {summary.years} years, you would have "
        f"about ${summary.final_value:,.2f}. ${summary.gains:,.2f} of that comes from growth on "
        "money you already saved."
    )


# ── Adapter ──────────────────────────────────────────────────────────

class ReflectionGenerator:
    """Available when a Gemini client is configured, Unavailable otherwise."""

    def __init__(
        self,
        client=None,
        model_name: str = "gemini-2.5-flash",
        timeout: float = 10.0,
        max_retries: int = 1,
        cache_ttl_seconds: int = 300,
    ):
        self.client = client
        self.model_name = model_name
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self._cache: TTLCache = TTLCache(maxsize=256, ttl=cache_ttl_seconds)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ReflectionGenerator":
        settings = settings or get_settings()
        client = None
        if not settings.use_mock_gemini and settings.gemini_api_key:
            client = genai.Client(api_key=settings.gemini_api_key)
        return cls(
            client=client,
            model_name=settings.gemini_model,
            timeout=settings.gemini_timeout_seconds,
            max_retries=settings.gemini_max_retries,
            cache_ttl_seconds=settings.gemini_cache_ttl_seconds,
        )

    @property
    def available(self) -> bool:
        return self.client is not None

    @property
    def state(self) -> str:
        return "available" if self.available else "unavailable"

    async def reflect(
        self,
        scenario_title: str,
        decision_prompt: str,
        choice_text: str,
        delta: ImpactDelta,
        profile=None,
    ) -> ReflectionResult:
        return await self._generate_or_fallback(
            lambda: reflection_prompt(scenario_title, decision_prompt, choice_text, delta, profile),
            fallback_reflection(choice_text),
            call_type="reflection",
        )

    async def explain_concept(self, concept: str, context: Optional[str] = None, profile=None) -> ReflectionResult:
        return await self._generate_or_fallback(
            lambda: concept_prompt(concept, context, profile),
            fallback_concept(concept),
            call_type="concept",
            cacheable=True,
        )

    async def explain_wealth(self, summary: WealthSummary, profile=None) -> ReflectionResult:
        return await self._generate_or_fallback(
            lambda: wealth_prompt(summary, profile),
            fallback_wealth(summary),
            call_type="wealth",
            cacheable=True,
        )

    async def _generate_or_fallback(self, build_prompt, fallback_text: str, call_type: str, cacheable: bool = False) -> ReflectionResult:
        try:
            prompt = build_prompt()
            return Generated(await self._generate(prompt, call_type, cacheable))
        except UpstreamUnavailable as e:
            logger.warning("Using fallback %s text: %s", call_type, e.message)
            return Fallback(fallback_text, reason=e.message)
        except Exception as e:
            logger.error("Unexpected error building %s text, using fallback: %s", call_type, e, exc_info=True)
            return Fallback(fallback_text, reason="error")

    async def _generate(self, prompt: str, call_type: str, cacheable: bool) -> str:
        """Call Gemini with a bounded timeout. Raises UpstreamUnavailable."""
        if self.client is None:
            raise UpstreamUnavailable("text generator not configured")

        key = hashlib.sha256(f"{self.model_name}:{prompt}".encode()).hexdigest()
        if cacheable and key in self._cache:
            logger.info("Cache hit for %s", call_type)
            return self._cache[key]

        last_error: Exception | None = None
        for attempt in range(1, self.max_retries + 1):
            try:
                response = await asyncio.wait_for(
                    asyncio.to_thread(
                        self.client.models.generate_content,
                        model=self.model_name,
                        contents=prompt,
                    ),
                    timeout=self.timeout,
                )
                text = (getattr(response, "text", None) or "").strip()
                if not text:
                    raise ValueError("empty response")

                if cacheable:
                    self._cache[key] = text
                logger.info("Gemini call [%s] ok on attempt %d", call_type, attempt)
                return text

            except asyncio.TimeoutError:
                logger.warning("Gemini timeout attempt %d/%d", attempt, self.max_retries)
                last_error = TimeoutError(f"timed out after {self.timeout}s")

            except Exception as e:
                logger.warning("Gemini error attempt %d/%d: %s", attempt, self.max_retries, e)
                last_error = e

        raise UpstreamUnavailable(f"Gemini call failed after {self.max_retries} attempts: {last_error}")
