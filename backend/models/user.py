from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer, Boolean, JSON
from database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String(64), primary_key=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Onboarding questionnaire
    experience_level = Column(String(20), nullable=False)  # beginner, intermediate, advanced
    financial_goals = Column(JSON, nullable=False, default=list)
    risk_comfort = Column(Integer, nullable=False)  # 1-10
    learning_style = Column(String(20), nullable=False)  # visual, textual, interactive

    # Accessibility preferences
    accessibility_font_size = Column(String(10), nullable=False, default="medium")
    accessibility_high_contrast = Column(Boolean, nullable=False, default=False)
    accessibility_colorblind_mode = Column(String(20), nullable=False, default="none")
