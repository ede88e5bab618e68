"""
MadSocial API - Main Application Entry Point

Campus social-event coordination:
- Events with host-run "pregames" attached to them
- Open joins and host-approved join requests under capacity limits
- Mutual overlap (dorm / major / year) between attendees
- Structured logging with request correlation and Prometheus metrics
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from madsocial.core.config import get_settings
from madsocial.core.exceptions import MadSocialError
from madsocial.core.logging import setup_logging, get_logger
from madsocial.core.metrics import metrics_endpoint
from madsocial.api.router import api_router
from madsocial.api.middleware import RequestLoggingMiddleware
from madsocial.db.session import create_engine, create_session_factory

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: build the storage handle on startup, dispose it on shutdown."""
    setup_logging()

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
    )

    engine = create_engine(settings)
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)

    yield

    await engine.dispose()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Campus events, pregames and mutual connections",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Custom middleware
app.add_middleware(RequestLoggingMiddleware)

# Routes
app.include_router(api_router)


@app.exception_handler(MadSocialError)
async def madsocial_error_handler(request: Request, exc: MadSocialError):
    """Map typed business-rule failures to their HTTP status."""
    logger.info("request_rejected", code=exc.code, status_code=exc.status_code, detail=exc.message)
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(
        {"detail": exc.message, "code": exc.code},
        status_code=exc.status_code,
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        {
            "detail": "Validation error",
            "code": "validation_error",
            "errors": jsonable_encoder(exc.errors()),
        },
        status_code=status.HTTP_400_BAD_REQUEST,
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    """Storage and other unexpected failures never leak details in production."""
    logger.exception("unhandled_error", error_type=type(exc).__name__)
    body = {"detail": "Internal server error", "code": "internal_error"}
    if not settings.is_production:
        body["message"] = str(exc)
    return JSONResponse(body, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
    }


@app.get("/metrics", tags=["Health"], include_in_schema=False)
async def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
