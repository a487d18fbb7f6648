"""
Durable per-user progress records.

Every call opens its own session; callers never hold ORM objects. Writes are
version-checked, so a write based on a stale read fails instead of silently
overwriting a newer record.
"""
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from database import Database
from errors import PersistenceError
from models.progress import Progress

logger = logging.getLogger(__name__)

DEFAULT_XP = 0
DEFAULT_LEVEL = 1
DEFAULT_HEALTH_SCORE = 50


@dataclass(frozen=True)
class ProgressRecord:
    user_id: str
    xp: int = DEFAULT_XP
    level: int = DEFAULT_LEVEL
    completed_lesson_ids: tuple[str, ...] = ()
    completed_scenario_ids: tuple[str, ...] = ()
    financial_health_score: int = DEFAULT_HEALTH_SCORE
    last_activity: datetime = field(default_factory=datetime.utcnow)
    version: int = 0

    @classmethod
    def from_row(cls, row: Progress) -> "ProgressRecord":
        return cls(
            user_id=row.user_id,
            xp=row.xp,
            level=row.level,
            completed_lesson_ids=tuple(row.completed_lesson_ids or []),
            completed_scenario_ids=tuple(row.completed_scenario_ids or []),
            financial_health_score=row.financial_health_score,
            last_activity=row.last_activity,
            version=row.version,
        )

    def evolve(self, **changes) -> "ProgressRecord":
        return replace(self, **changes)


Mutation = Callable[[ProgressRecord], ProgressRecord]


class ProgressStore:
    """Single source of truth for Progress rows."""

    def __init__(self, database: Database):
        self.database = database

    # ── Reads ────────────────────────────────────────────────────────

    def get(self, user_id: str) -> Optional[ProgressRecord]:
        try:
            with self.database.session() as db:
                row = db.query(Progress).filter(Progress.user_id == user_id).first()
                return ProgressRecord.from_row(row) if row else None
        except SQLAlchemyError as e:
            logger.error("Progress read failed for %s: %s", user_id, e, exc_info=True)
            raise PersistenceError("Failed to read progress") from e

    def get_or_create(self, user_id: str) -> ProgressRecord:
        try:
            with self.database.session() as db:
                return ProgressRecord.from_row(self._load_or_insert(db, user_id))
        except SQLAlchemyError as e:
            logger.error("Progress read failed for %s: %s", user_id, e, exc_info=True)
            raise PersistenceError("Failed to read progress") from e

    # ── Writes ───────────────────────────────────────────────────────

    def apply(self, user_id: str, mutate: Mutation) -> ProgressRecord:
        """Read (creating defaults if absent), mutate, and write back one record."""
        try:
            with self.database.session() as db:
                current = ProgressRecord.from_row(self._load_or_insert(db, user_id))
                updated = mutate(current)
                return self._write(db, updated, expected_version=current.version)
        except SQLAlchemyError as e:
            logger.error("Progress write failed for %s: %s", user_id, e, exc_info=True)
            raise PersistenceError("Failed to save progress") from e

    def delete(self, db: Session, user_id: str):
        db.query(Progress).filter(Progress.user_id == user_id).delete(synchronize_session=False)

    def insert_default(self, db: Session, user_id: str) -> Progress:
        row = Progress(
            user_id=user_id,
            xp=DEFAULT_XP,
            level=DEFAULT_LEVEL,
            completed_lesson_ids=[],
            completed_scenario_ids=[],
            financial_health_score=DEFAULT_HEALTH_SCORE,
            last_activity=datetime.utcnow(),
            version=0,
        )
        db.add(row)
        return row

    # ── Internals ────────────────────────────────────────────────────

    def _load_or_insert(self, db: Session, user_id: str) -> Progress:
        row = db.query(Progress).filter(Progress.user_id == user_id).first()
        if row:
            return row

        self.insert_default(db, user_id)
        try:
            db.commit()
        except IntegrityError:
            # Created by someone else between our read and insert
            db.rollback()
        return db.query(Progress).filter(Progress.user_id == user_id).one()

    def _write(self, db: Session, record: ProgressRecord, expected_version: int) -> ProgressRecord:
        new_version = expected_version + 1
        updated_rows = db.query(Progress).filter(
            Progress.user_id == record.user_id,
            Progress.version == expected_version,
        ).update(
            {
                Progress.xp: record.xp,
                Progress.level: record.level,
                Progress.completed_lesson_ids: list(record.completed_lesson_ids),
                Progress.completed_scenario_ids: list(record.completed_scenario_ids),
                Progress.financial_health_score: record.financial_health_score,
                Progress.last_activity: record.last_activity,
                Progress.version: new_version,
            },
            synchronize_session=False,
        )
        if updated_rows != 1:
            db.rollback()
            logger.error("Stale progress write for %s (version %d)", record.user_id, expected_version)
            raise PersistenceError("Progress was modified concurrently")

        db.commit()
        return record.evolve(version=new_version)
