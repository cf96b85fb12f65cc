"""
Coaching Backend API Server

FastAPI application for coaching programs: availability, slot booking,
session lifecycle, cohorts, curriculum progress and submissions.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from datetime import datetime, timezone
import time

from coaching_engine.api.dependencies import build_services, configure_services
from coaching_engine.api.routes import bookings, cohorts, health, programs, sessions, slots, submissions
from coaching_engine.config import get_settings
from coaching_engine.database import close_redis, init_redis
from coaching_engine.errors import CoachingError
from coaching_engine.services.notifications import build_notification_sink
from coaching_engine.services.scheduler import start_scheduler, stop_scheduler

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    settings = get_settings()

    # Startup
    logger.info("Starting Coaching API server...")

    redis_client = None
    if settings.notification_backend == "redis":
        redis_client = await init_redis()
        logger.info("Redis notification sink connected")

    configure_services(build_services(notifier=build_notification_sink(redis_client)))

    if settings.scheduler_enabled:
        start_scheduler()
        logger.info("Background scheduler started")

    yield

    # Shutdown
    logger.info("Shutting down Coaching API server...")
    if settings.scheduler_enabled:
        stop_scheduler()
        logger.info("Background scheduler stopped")
    await close_redis()


# Create FastAPI application
app = FastAPI(
    title="Coaching API",
    description="Scheduling and booking engine for coaching programs",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json"
)


# CORS middleware for development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify exact origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests with timing"""
    start_time = time.time()

    # Process request
    response = await call_next(request)

    # Calculate duration
    duration_ms = (time.time() - start_time) * 1000

    # Log request
    logger.info(
        f"{request.method} {request.url.path} - "
        f"Status: {response.status_code} - "
        f"Duration: {duration_ms:.2f}ms"
    )

    return response


# Domain error handler
@app.exception_handler(CoachingError)
async def coaching_exception_handler(request: Request, exc: CoachingError):
    """Map domain errors to the error envelope"""
    if exc.status_code >= 409:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.code} {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})


# HTTP error handler
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render HTTP errors (authentication, unknown routes) in the error envelope"""
    if isinstance(exc.detail, dict) and "error" in exc.detail:
        content = exc.detail
    else:
        content = {
            "error": {
                "code": "HTTP_ERROR",
                "message": str(exc.detail),
                "details": None,
                "retryable": False,
            }
        }
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all uncaught exceptions"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An internal server error occurred",
                "details": str(exc) if app.debug else None,
                "retryable": False,
            }
        }
    )


# Validation error handler
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors"""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "Request validation failed",
                "details": jsonable_errors(exc),
                "retryable": False,
            }
        }
    )


def jsonable_errors(exc: RequestValidationError):
    # ctx may carry the raw exception object
    return [{k: v for k, v in error.items() if k != "ctx"} for error in exc.errors()]


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns server status and version information.
    """
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": "1.0.0",
        "service": "coaching-api"
    }


# Include routers
app.include_router(health.router)
app.include_router(programs.router)
app.include_router(slots.router)
app.include_router(bookings.router)
app.include_router(sessions.router)
app.include_router(cohorts.router)
app.include_router(submissions.router)


# Root endpoint
@app.get("/", tags=["Root"])
async def root():
    """API root endpoint"""
    return {
        "name": "Coaching API",
        "version": "1.0.0",
        "description": "Scheduling and booking engine for coaching programs",
        "docs": "/api/docs",
        "health": "/health"
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
