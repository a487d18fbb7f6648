"""
EmpowerMint - Financial Decision Learning Platform
Branching money scenarios, lessons and quizzes that turn choices into XP,
levels and a financial-health score, with Gemini-written reflections.
"""
import logging
import json
import sys
import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import Settings, get_settings
from database import Database
from errors import AppError
from routers import (
    scenarios_router,
    lessons_router,
    progress_router,
    onboarding_router,
    ai_router
)
from routers.deps import limiter
from services.catalog import CatalogStore
from services.onboarding import OnboardingService
from services.progress_service import ProgressService
from services.progress_store import ProgressStore
from services.reflection import ReflectionGenerator


# ── Structured JSON Logging ─────────────────────────────────────────
class JSONFormatter(logging.Formatter):
    """Structured JSON log formatter for production observability."""
    def format(self, record):
        log = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0]:
            log["exception"] = self.formatException(record.exc_info)
        if hasattr(record, "request_id"):
            log["request_id"] = record.request_id
        return json.dumps(log)


def setup_logging():
    """Configure structured logging for all app loggers."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.INFO)
    # Quiet noisy libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


logger = logging.getLogger("empowermint")

OPENAPI_TAGS = [
    {"name": "scenarios", "description": "Browse scenarios, make decisions, complete scenarios"},
    {"name": "lessons", "description": "Browse lessons and record quiz results"},
    {"name": "progress", "description": "Learner XP, level, completions and financial-health score"},
    {"name": "onboarding", "description": "One-time questionnaire and starter recommendations"},
    {"name": "ai", "description": "Concept explanations, wealth projections and choice reflections"},
    {"name": "ops", "description": "Health checks and operational endpoints"},
]

ERROR_CODES = {400: "VALIDATION_ERROR", 404: "NOT_FOUND", 405: "METHOD_NOT_ALLOWED", 429: "RATE_LIMITED"}


def _error(status_code: int, code: str, message: str, details=None) -> JSONResponse:
    body = {"code": code, "message": message}
    if details:
        body["details"] = details
    return JSONResponse(status_code=status_code, content={"error": body})


def register_exception_handlers(app: FastAPI, settings: Settings):
    def internal_message(exc: Exception) -> str:
        if settings.is_production:
            return "Internal server error"
        return getattr(exc, "message", None) or str(exc) or "Internal server error"

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message, exc_info=exc)
            return _error(exc.status_code, exc.code, internal_message(exc))
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        details = [
            {"field": ".".join(str(p) for p in err.get("loc", ())[1:]) or "body", "message": err.get("msg", "invalid")}
            for err in exc.errors()
        ]
        return _error(400, "VALIDATION_ERROR", "Validation failed", details)

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        return _error(429, "RATE_LIMITED", f"Rate limit exceeded: {exc.detail}")

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        code = ERROR_CODES.get(exc.status_code, "HTTP_ERROR")
        message = "Route not found" if exc.status_code == 404 else str(exc.detail)
        return _error(exc.status_code, code, message)

    @app.exception_handler(Exception)
    async def unhandled_handler(request: Request, exc: Exception):
        logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        return _error(500, "INTERNAL_ERROR", internal_message(exc))


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    catalog: Optional[CatalogStore] = None,
    reflector: Optional[ReflectionGenerator] = None,
    configure_logging: bool = True,
) -> FastAPI:
    """Build the API. Storage, catalog and reflector are created at startup unless injected."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler for startup/shutdown."""
        if configure_logging:
            setup_logging()
        logger.info("Starting EmpowerMint API (model %s)", settings.gemini_model)

        db = database or Database(settings.database_url)
        db.init_db()
        logger.info("Database initialized")

        store = ProgressStore(db)
        app.state.database = db
        app.state.catalog = catalog or CatalogStore.from_directory(settings.data_dir)
        app.state.reflector = reflector or ReflectionGenerator.from_settings(settings)
        app.state.progress_service = ProgressService(store)
        app.state.onboarding_service = OnboardingService(db, store)
        if not app.state.reflector.available:
            logger.warning("GEMINI_API_KEY not set or mock mode on; reflections use fallback text")
        yield
        logger.info("Shutting down EmpowerMint API")
        if database is None:
            db.dispose()

    app = FastAPI(
        title="EmpowerMint API",
        description=(
            "# EmpowerMint - Financial Decision Learning\n\n"
            "- Branching money scenarios with clamped, deterministic outcomes\n"
            "- Lessons and quizzes that award XP and levels\n"
            "- Financial-health score that follows your choices\n"
            "- Gemini reflections with graceful fallbacks"
        ),
        version="0.1.0",
        lifespan=lifespan,
        openapi_tags=OPENAPI_TAGS,
        license_info={"name": "MIT"},
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Rate limiter state (required by slowapi)
    app.state.limiter = limiter
    register_exception_handlers(app, settings)

    # Include routers
    app.include_router(scenarios_router)
    app.include_router(lessons_router)
    app.include_router(progress_router)
    app.include_router(onboarding_router)
    app.include_router(ai_router)

    # ── Request logging middleware ───────────────────────────────────
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log every request with method, path, and response time."""
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        if not request.url.path.endswith("/health"):
            logger.info(
                "%s %s %d %.0fms",
                request.method, request.url.path, response.status_code, duration_ms,
            )
        return response

    @app.get("/", tags=["ops"])
    async def root():
        return {
            "name": "EmpowerMint API",
            "version": "0.1.0",
            "docs": "/docs",
            "health": "/api/health",
        }

    @app.get("/api/health", tags=["ops"])
    async def health_check(request: Request):
        """Readiness probe. Reports database and text-generator status."""
        checks = {"api": "ok"}
        try:
            request.app.state.database.ping()
            checks["database"] = "ok"
        except Exception:
            checks["database"] = "error"
        checks["reflection"] = request.app.state.reflector.state
        overall = "healthy" if checks["database"] == "ok" else "degraded"
        return {"status": overall, "timestamp": datetime.utcnow().isoformat() + "Z", "checks": checks}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
