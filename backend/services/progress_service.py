"""
Progress accounting: XP, level, completion sets and financial-health score.

All mutations for one user are serialized through a per-user asyncio lock
held across the whole read-modify-write, so concurrent awards never lose
updates. Different users never contend.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from errors import ValidationError
from services.progress_store import ProgressRecord, ProgressStore
from services.rounding import round_half_up

logger = logging.getLogger(__name__)

XP_PER_LEVEL = 100
SCENARIO_COMPLETION_XP = 100
MAX_LESSON_XP = 50


# ── Rules ────────────────────────────────────────────────────────────

def level_for_xp(xp: int) -> int:
    return xp // XP_PER_LEVEL


def clamp_health(score: float) -> int:
    return max(0, min(100, round_half_up(score)))


def health_from_knowledge(financial_knowledge: float) -> int:
    """Scenario completion: 50 + knowledge * 5, bounded to [0, 100]."""
    return clamp_health(50 + financial_knowledge * 5)


def lesson_xp(score: float) -> int:
    return round_half_up(score / 100 * MAX_LESSON_XP)


def lesson_health(score: float) -> int:
    return clamp_health(score)


def _with_id(ids: tuple[str, ...], new_id: str) -> tuple[str, ...]:
    return ids if new_id in ids else ids + (new_id,)


# ── Per-user serialization ───────────────────────────────────────────

class KeyedLocks:
    """One asyncio.Lock per key, discarded once nobody holds or awaits it."""

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}
        self._holders: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str):
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if not self._holders[key]:
                del self._holders[key]
                del self._locks[key]

    def __len__(self):
        return len(self._locks)


# ── Service ──────────────────────────────────────────────────────────

class ProgressService:
    """Applies progress rules and persists them through the ProgressStore."""

    def __init__(self, store: ProgressStore, locks: Optional[KeyedLocks] = None):
        self.store = store
        self.locks = locks or KeyedLocks()

    async def get_progress(self, user_id: str) -> ProgressRecord:
        _check_user_id(user_id)
        return await asyncio.to_thread(self.store.get_or_create, user_id)

    async def add_xp(self, user_id: str, amount: int) -> ProgressRecord:
        _check_amount(amount)
        return await self._mutate(user_id, lambda p: _award(p, amount))

    async def mark_lesson_complete(
        self,
        user_id: str,
        lesson_id: str,
        xp_earned: int,
        health_score: Optional[float] = None,
    ) -> ProgressRecord:
        _check_amount(xp_earned)

        def mutate(p: ProgressRecord) -> ProgressRecord:
            p = _award(p, xp_earned)
            p = p.evolve(completed_lesson_ids=_with_id(p.completed_lesson_ids, lesson_id))
            if health_score is not None:
                p = p.evolve(financial_health_score=clamp_health(health_score))
            return p

        return await self._mutate(user_id, mutate)

    async def mark_scenario_complete(
        self,
        user_id: str,
        scenario_id: str,
        xp_earned: int,
        health_score: Optional[float] = None,
    ) -> ProgressRecord:
        _check_amount(xp_earned)

        def mutate(p: ProgressRecord) -> ProgressRecord:
            p = _award(p, xp_earned)
            p = p.evolve(completed_scenario_ids=_with_id(p.completed_scenario_ids, scenario_id))
            if health_score is not None:
                p = p.evolve(financial_health_score=clamp_health(health_score))
            return p

        return await self._mutate(user_id, mutate)

    async def set_health_score(self, user_id: str, score: float) -> ProgressRecord:
        if score is None or isinstance(score, bool) or not isinstance(score, (int, float)):
            raise ValidationError("score must be a number")
        health = clamp_health(score)
        return await self._mutate(user_id, lambda p: p.evolve(financial_health_score=health))

    async def _mutate(self, user_id: str, mutate) -> ProgressRecord:
        _check_user_id(user_id)
        async with self.locks.hold(user_id):
            record = await asyncio.to_thread(self.store.apply, user_id, lambda p: _finalize(mutate(p)))
        logger.info("Progress %s: xp=%d level=%d health=%d", user_id, record.xp, record.level, record.financial_health_score)
        return record


def _award(p: ProgressRecord, amount: int) -> ProgressRecord:
    return p.evolve(xp=p.xp + amount)


def _finalize(p: ProgressRecord) -> ProgressRecord:
    """Level always follows xp; every mutation touches last_activity."""
    return p.evolve(level=level_for_xp(p.xp), last_activity=datetime.utcnow())


def _check_user_id(user_id: str):
    if not user_id or not isinstance(user_id, str):
        raise ValidationError("userId is required")


def _check_amount(amount):
    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
        raise ValidationError("XP amount must be a non-negative integer")
