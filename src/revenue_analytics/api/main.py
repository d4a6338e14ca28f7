"""FastAPI application for the revenue analytics dashboard service."""

import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from revenue_analytics.analytics.engine import RevenueAnalyticsEngine
from revenue_analytics.clients.database_client import DatabaseClient
from revenue_analytics.errors import ComputationError, ValidationError
from revenue_analytics.logging import configure_logging, logging_context
from revenue_analytics.repository import RevenueRepository

from .config import get_settings
from .routes.health import router as health_router
from .routes.metrics import router as metrics_router

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the database client and engine at startup, dispose at shutdown."""
    settings = get_settings()
    configure_logging(json_output=settings.LOG_JSON, log_level=settings.LOG_LEVEL)

    db = DatabaseClient(settings.DATABASE_URL)
    db.connect()
    db.setup_schema()

    logger.info("lifespan.startup", database_url=db.engine.url.render_as_string(hide_password=True))

    # Store on app.state for request handlers
    app.state.db = db
    app.state.engine = RevenueAnalyticsEngine(RevenueRepository(db))

    logger.info("lifespan.ready")
    yield

    # Shutdown
    logger.info("lifespan.shutdown")
    db.close()


app = FastAPI(
    title="revenue-analytics",
    description="Quarterly revenue, pipeline, risk and recommendation views over a sales dataset",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[REQUEST_ID_HEADER],
)


@app.middleware("http")
async def bind_request_id(request: Request, call_next):
    """Tag every log entry of a request with its ID and echo the ID back."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    with logging_context(request_id=request_id):
        response = await call_next(request)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    logger.warning("request.invalid", path=request.url.path, error=exc.message)
    return JSONResponse(status_code=400, content={"error": exc.message, "context": _safe(exc.context)})


@app.exception_handler(ComputationError)
async def computation_error_handler(request: Request, exc: ComputationError):
    logger.error("request.computation_failed", path=request.url.path, **_safe(exc.context))
    return JSONResponse(status_code=500, content={"error": "computation failed", "view": exc.context.get("view")})


def _safe(context: dict) -> dict:
    """Stringify context values so they always serialize."""
    return {key: str(value) for key, value in context.items()}


app.include_router(health_router)
app.include_router(metrics_router)
