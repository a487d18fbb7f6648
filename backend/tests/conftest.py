"""Shared test configuration."""
import sys
import os

# Add backend directory to path so imports work
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

# Force fallback reflections and a throwaway database for all tests
os.environ["USE_MOCK_GEMINI"] = "true"
os.environ["GEMINI_API_KEY"] = ""
os.environ["DATABASE_URL"] = "sqlite:///test.db"
os.environ["DECISION_RATE_LIMIT"] = "1000/minute"
os.environ["AI_RATE_LIMIT"] = "1000/minute"

import pytest
from fastapi.testclient import TestClient

from config import get_settings
from database import Database
from services.catalog import CatalogStore
from services.progress_service import ProgressService
from services.progress_store import ProgressStore
from services.reflection import ReflectionGenerator


@pytest.fixture
def database(tmp_path):
    db = Database(f"sqlite:///{tmp_path / 'empowermint-test.db'}")
    db.init_db()
    yield db
    db.drop_all()
    db.dispose()


@pytest.fixture
def store(database):
    return ProgressStore(database)


@pytest.fixture
def progress_service(store):
    return ProgressService(store)


@pytest.fixture(scope="session")
def catalog():
    return CatalogStore.from_directory(get_settings().data_dir)


@pytest.fixture
def client(database, catalog):
    from main import create_app

    app = create_app(
        database=database,
        catalog=catalog,
        reflector=ReflectionGenerator(),  # no client: always falls back
        configure_logging=False,
    )
    with TestClient(app) as c:
        yield c
