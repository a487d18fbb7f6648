"""
Onboarding: store the questionnaire as a UserProfile, give the learner a
starter progress record, and pick static recommendations by experience level.
"""
import logging
import uuid
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError

from database import Database
from errors import PersistenceError
from models.user import User
from schemas.user import AccessibilitySettings, OnboardingRequest, OnboardingResponse, UserProfileResponse
from services.progress_store import ProgressStore

logger = logging.getLogger(__name__)

ALL_LESSONS = [
    "lesson-1-compound-interest",
    "lesson-2-budgeting-basics",
    "lesson-3-debt-management",
    "lesson-4-emergency-fund",
    "lesson-5-investing-basics",
]
ALL_SCENARIOS = [
    "scenario-1-first-job",
    "scenario-2-apartment-rent",
    "scenario-3-market-dip",
]

RECOMMENDATIONS = {
    "beginner": (
        ["lesson-1-compound-interest", "lesson-2-budgeting-basics", "lesson-4-emergency-fund"],
        ["scenario-1-first-job", "scenario-2-apartment-rent"],
    ),
    "intermediate": (
        ["lesson-3-debt-management", "lesson-5-investing-basics"],
        ["scenario-3-market-dip"],
    ),
    # Advanced learners get everything
    "advanced": (ALL_LESSONS, ALL_SCENARIOS),
}


def recommend(experience_level: str) -> tuple[list[str], list[str]]:
    lessons, scenarios = RECOMMENDATIONS.get(experience_level, RECOMMENDATIONS["advanced"])
    return list(lessons), list(scenarios)


def profile_response(user: User) -> UserProfileResponse:
    return UserProfileResponse(
        id=user.id,
        created_at=user.created_at,
        experience_level=user.experience_level,
        financial_goals=list(user.financial_goals or []),
        risk_comfort=user.risk_comfort,
        learning_style=user.learning_style,
        accessibility=AccessibilitySettings(
            font_size=user.accessibility_font_size,
            high_contrast=user.accessibility_high_contrast,
            colorblind_mode=user.accessibility_colorblind_mode,
        ),
    )


class OnboardingService:
    def __init__(self, database: Database, progress_store: ProgressStore):
        self.database = database
        self.progress_store = progress_store

    def complete(self, data: OnboardingRequest) -> OnboardingResponse:
        """Create the user and a default progress row in one transaction."""
        defaults = AccessibilitySettings()
        user = User(
            id=str(uuid.uuid4()),
            created_at=datetime.utcnow(),
            experience_level=data.experience_level,
            financial_goals=list(data.financial_goals),
            risk_comfort=data.risk_comfort,
            learning_style=data.learning_style,
            accessibility_font_size=defaults.font_size,
            accessibility_high_contrast=defaults.high_contrast,
            accessibility_colorblind_mode=defaults.colorblind_mode,
        )

        try:
            with self.database.session() as db:
                db.add(user)
                self.progress_store.insert_default(db, user.id)
                db.commit()
                db.refresh(user)
                profile = profile_response(user)
        except SQLAlchemyError as e:
            logger.error("Onboarding save failed: %s", e, exc_info=True)
            raise PersistenceError("Failed to save user profile") from e

        logger.info("Onboarded user %s (%s)", profile.id, profile.experience_level)
        lessons, scenarios = recommend(data.experience_level)
        return OnboardingResponse(
            user_profile=profile,
            recommended_lessons=lessons,
            recommended_scenarios=scenarios,
        )

    def get_user(self, user_id: str):
        try:
            with self.database.session() as db:
                user = db.query(User).filter(User.id == user_id).first()
                return profile_response(user) if user else None
        except SQLAlchemyError as e:
            logger.error("Reading user %s failed: %s", user_id, e, exc_info=True)
            raise PersistenceError("Failed to read user profile") from e

    def delete_user(self, user_id: str) -> bool:
        """Remove a user and their progress row together."""
        try:
            with self.database.session() as db:
                deleted = db.query(User).filter(User.id == user_id).delete(synchronize_session=False)
                self.progress_store.delete(db, user_id)
                db.commit()
                return bool(deleted)
        except SQLAlchemyError as e:
            logger.error("Deleting user %s failed: %s", user_id, e, exc_info=True)
            raise PersistenceError("Failed to delete user") from e
