from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer, JSON
from database import Base


class Progress(Base):
    """Durable per-learner XP, level and completion record."""
    __tablename__ = "progress"

    user_id = Column(String(64), primary_key=True)

    xp = Column(Integer, nullable=False, default=0)
    level = Column(Integer, nullable=False, default=1)  # floor(xp / 100) once mutated

    # Stored as JSON arrays; treated as sets by the accounting service
    completed_lesson_ids = Column(JSON, nullable=False, default=list)
    completed_scenario_ids = Column(JSON, nullable=False, default=list)

    financial_health_score = Column(Integer, nullable=False, default=50)  # 0-100
    last_activity = Column(DateTime, nullable=False, default=datetime.utcnow)

    # Bumped on every write; stale writes are rejected
    version = Column(Integer, nullable=False, default=0)
