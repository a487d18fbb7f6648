"""
Read-only catalog of scenarios and lessons, loaded once from JSON at startup.
"""
import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from errors import NotFoundError
from schemas.lesson import Lesson
from schemas.scenario import Scenario

logger = logging.getLogger(__name__)

CATALOG_FILES = ("scenarios.json", "lessons.json")


def _load_json(path: Path) -> list[dict]:
    if not path.exists():
        logger.warning("Catalog file %s not found, starting empty", path)
        return []
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def _index(items: Iterable, kind: str) -> Mapping:
    by_id = {}
    for item in items:
        if item.id in by_id:
            raise ValueError(f"duplicate {kind} id: {item.id}")
        by_id[item.id] = item
    return MappingProxyType(by_id)


class CatalogStore:
    """Immutable lookup of Scenario and Lesson definitions by id."""

    def __init__(self, scenarios: Iterable[Scenario] = (), lessons: Iterable[Lesson] = ()):
        self._scenarios = tuple(scenarios)
        self._lessons = tuple(lessons)
        self._scenarios_by_id = _index(self._scenarios, "scenario")
        self._lessons_by_id = _index(self._lessons, "lesson")

    @classmethod
    def from_directory(cls, data_dir: Path) -> "CatalogStore":
        data_dir = Path(data_dir)
        if not any((data_dir / name).exists() for name in CATALOG_FILES):
            raise FileNotFoundError(f"No scenarios.json or lessons.json in {data_dir}")
        scenarios = [Scenario.model_validate(s) for s in _load_json(data_dir / "scenarios.json")]
        lessons = [Lesson.model_validate(l) for l in _load_json(data_dir / "lessons.json")]
        logger.info("Catalog loaded: %d scenarios, %d lessons", len(scenarios), len(lessons))
        return cls(scenarios, lessons)

    # ── Scenarios ────────────────────────────────────────────────────

    def list_scenarios(self, category: Optional[str] = None, difficulty: Optional[int] = None) -> list[Scenario]:
        result = list(self._scenarios)
        if category:
            result = [s for s in result if s.category == category]
        if difficulty:
            result = [s for s in result if s.difficulty_level == difficulty]
        return result

    def get_scenario(self, scenario_id: str) -> Scenario:
        scenario = self._scenarios_by_id.get(scenario_id)
        if scenario is None:
            raise NotFoundError(f"Scenario with id {scenario_id} not found")
        return scenario

    @property
    def scenario_ids(self) -> list[str]:
        return [s.id for s in self._scenarios]

    # ── Lessons ──────────────────────────────────────────────────────

    def list_lessons(self, category: Optional[str] = None, difficulty: Optional[int] = None) -> list[Lesson]:
        result = list(self._lessons)
        if category:
            result = [l for l in result if l.category == category]
        if difficulty:
            result = [l for l in result if l.difficulty_level == difficulty]
        return result

    def get_lesson(self, lesson_id: str) -> Lesson:
        lesson = self._lessons_by_id.get(lesson_id)
        if lesson is None:
            raise NotFoundError(f"Lesson with id {lesson_id} not found")
        return lesson

    @property
    def lesson_ids(self) -> list[str]:
        return [l.id for l in self._lessons]
