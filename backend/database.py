from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, text
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import Session, sessionmaker

Base = declarative_base()


class Database:
    """Storage handle: owns the engine and session factory for one process.

    Built once by the application entry point and passed to whatever needs
    persistence; nothing in the codebase opens its own engine.
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        engine_kwargs = {"pool_pre_ping": True, "echo": echo}
        if url.startswith("sqlite"):
            # Sessions are used from worker threads (asyncio.to_thread).
            engine_kwargs["connect_args"] = {"check_same_thread": False}
        else:
            engine_kwargs.update(pool_size=10, max_overflow=20)

        self.engine = create_engine(url, **engine_kwargs)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def init_db(self):
        """Create tables for every registered model."""
        from models import progress, user  # noqa: F401
        Base.metadata.create_all(bind=self.engine)

    def drop_all(self):
        Base.metadata.drop_all(bind=self.engine)

    @contextmanager
    def session(self) -> Iterator[Session]:
        db = self.SessionLocal()
        try:
            yield db
        finally:
            db.close()

    def ping(self) -> bool:
        with self.session() as db:
            db.execute(text("SELECT 1"))
        return True

    def dispose(self):
        self.engine.dispose()
