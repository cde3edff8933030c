"""
KennelMate Backend - FastAPI Application Entry Point

Purpose: Main application initialization with API routes, middleware, and lifecycle events.

Testing:
    uvicorn kennelmate.main:app --reload --port 8080
    curl http://localhost:8080/health
    Open http://localhost:8080/docs for interactive API documentation

AWS Deployment Notes:
    - Runs on ECS Fargate behind an ALB and the API gateway authorizer
    - Health check endpoint used by ALB target group
    - CORS configured for production domains
    - Structured logging for CloudWatch
"""

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from contextlib import asynccontextmanager
import logging
import time
import sys
from typing import Dict, Any

from kennelmate.config import settings, validate_settings, print_config_summary
from kennelmate.api.v1 import reminders
from kennelmate.dependencies import get_store_factory
from kennelmate.services.stores import DynamoStoreFactory


# Configure logging
def setup_logging():
    """Configure structured logging"""
    log_level = getattr(logging, settings.LOG_LEVEL)

    if settings.LOG_FORMAT == "json":
        # JSON logging for production (CloudWatch)
        import json
        import datetime

        class JSONFormatter(logging.Formatter):
            def format(self, record):
                log_data = {
                    "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
                    "level": record.levelname,
                    "message": record.getMessage(),
                    "logger": record.name,
                    "line": record.lineno,
                }
                if record.exc_info:
                    log_data["exception"] = self.formatException(record.exc_info)
                return json.dumps(log_data)

        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter())
    else:
        # Text logging for local development
        handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        handler.setFormatter(formatter)

    # Configure root logger
    logging.basicConfig(
        level=log_level,
        handlers=[handler],
        force=True
    )

    # Reduce noise from boto3/botocore
    logging.getLogger('botocore').setLevel(logging.WARNING)
    logging.getLogger('boto3').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)


setup_logging()
logger = logging.getLogger(__name__)


# Lifespan context manager for startup/shutdown events
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager - runs on startup and shutdown
    """
    # Startup
    logger.info("Starting KennelMate Backend")

    try:
        # Validate configuration
        validate_settings()
        logger.info("Configuration validated successfully")

        # Print config summary in debug mode
        if settings.DEBUG:
            print_config_summary()

        # Verify tables exist when running against DynamoDB
        factory = get_store_factory()
        if isinstance(factory, DynamoStoreFactory):
            await factory.db.verify_tables()
            logger.info("Database tables verified")

        logger.info(f"KennelMate Backend ready - Environment: {settings.ENVIRONMENT}")

    except Exception as e:
        logger.error(f"Failed to start application: {e}", exc_info=True)
        raise

    yield

    # Shutdown
    logger.info("Shutting down KennelMate Backend")


# Create FastAPI application
app = FastAPI(
    title="KennelMate API",
    description="Breeding reminders: heat cycles, vaccinations, litter milestones, birthdays and custom reminders",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)


# =============================================================================
# MIDDLEWARE
# =============================================================================

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# GZip compression
app.add_middleware(GZipMiddleware, minimum_size=1000)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log one line per request with the calling user and duration"""
    started = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - started) * 1000

    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code} "
        f"user={request.headers.get('x-user-id', '-')} {duration_ms:.1f}ms"
    )
    return response


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

def jsonable_errors(exc: RequestValidationError):
    # pydantic v2 puts the raw exception object in ctx for some errors
    return [
        {key: (str(value) if key == "ctx" else value) for key, value in error.items()}
        for error in exc.errors()
    ]


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle validation errors with detailed messages"""
    logger.warning(f"Validation error on {request.url.path}: {jsonable_errors(exc)}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "Validation Error",
            "detail": jsonable_errors(exc),
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected errors"""
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=True)

    content = {"error": "Internal Server Error"}
    if settings.DEBUG:
        content.update(detail=str(exc), type=type(exc).__name__)
    else:
        content["message"] = "An unexpected error occurred. Please try again later."

    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


# =============================================================================
# ROUTES
# =============================================================================

# Health check endpoint (for ALB/ECS)
@app.get("/health", tags=["Health"])
async def health_check() -> Dict[str, Any]:
    """
    Health check endpoint for load balancers and monitoring
    """
    return {
        "status": "healthy",
        "environment": settings.ENVIRONMENT,
        "version": "1.0.0",
        "services": {
            "stores": settings.STORE_BACKEND,
            "database": "dynamodb-local" if settings.USE_DYNAMODB_LOCAL else "dynamodb",
            "reminders": "enabled" if settings.ENABLE_REMINDERS else "disabled",
            "migration": "enabled" if settings.ENABLE_MIGRATION else "disabled",
        }
    }


# Root endpoint
@app.get("/", tags=["Root"])
async def root() -> Dict[str, str]:
    """
    Root endpoint with API information
    """
    return {
        "service": "KennelMate API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
    }


# Include API v1 routers
app.include_router(
    reminders.router,
    prefix=settings.API_V1_PREFIX,
    tags=["Reminders"]
)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "kennelmate.main:app",
        host="0.0.0.0",
        port=8080,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
