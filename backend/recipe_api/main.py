from contextlib import asynccontextmanager
from datetime import datetime, timezone
import asyncio
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError, OperationalError

from recipe_api.api import api_router
from recipe_api.api.deps import active_recipe_generator, get_recipe_generator
from recipe_api.config import settings
from recipe_api.database import init_db, check_database_connection
from recipe_api.logging_config import setup_logging
from recipe_api.exceptions import AppException, to_http_exception

# Configure logging
setup_logging()
logger = logging.getLogger(__name__)

SHUTDOWN_DRAIN_TIMEOUT_SECONDS = 30.0


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.
    Creates tables, warms up the recipe generator and drains running pipelines on shutdown.
    """
    provider_model = settings.gemini_model if settings.recipe_extraction_provider == "gemini" else settings.openrouter_model
    logger.info(
        "🚀 Application startup",
        extra={
            "recipe_extraction_provider": settings.recipe_extraction_provider,
            "recipe_extraction_model": provider_model,
            "youtube_language": settings.youtube_default_language
        }
    )

    # Test database connection and create missing tables
    if check_database_connection():
        init_db()
        logger.info("✅ Database ready")
    else:
        logger.error("❌ Database connection failed")

    # Loads the prompt config and provider once for the process
    try:
        generator = get_recipe_generator()
        logger.info(
            f"🤖 Recipe extraction provider: {settings.recipe_extraction_provider}",
            extra={"provider": generator.provider.name, "model": provider_model}
        )
    except AppException as e:
        logger.error(
            "⚠️  Recipe generator failed to initialize",
            extra={"error_code": e.error_code, "error": e.message}
        )

    # Verify extraction provider health without blocking startup for long
    generator = active_recipe_generator()
    if generator is not None:
        loop = asyncio.get_running_loop()
        try:
            is_healthy = await asyncio.wait_for(
                loop.run_in_executor(None, generator.provider.check_health),
                timeout=3.0
            )
            if is_healthy:
                logger.info("✅ Recipe extraction provider healthy", extra={"status": "available"})
            else:
                logger.warning("⚠️  Recipe extraction provider unhealthy", extra={"status": "degraded"})
        except asyncio.TimeoutError:
            logger.warning(
                "⚠️  Recipe extraction provider health check timed out",
                extra={"status": "degraded", "timeout_seconds": 3}
            )

    yield

    # Shutdown: let running pipelines reach a terminal status
    generator = active_recipe_generator()
    if generator is not None and generator.pending_count:
        logger.info(f"Waiting for {generator.pending_count} recipe pipeline(s) to finish")
        await generator.wait_for_pending(timeout=SHUTDOWN_DRAIN_TIMEOUT_SECONDS)

    logger.info(
        "👋 Application shutdown",
        extra={"timestamp": datetime.now(timezone.utc).isoformat()}
    )


app = FastAPI(
    title="Recipe Generator API",
    description="API for turning YouTube cooking videos into structured recipes using AI",
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_router)


# Global exception handlers
@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    """Handle custom application exceptions."""
    # Build logging context with provider information if available
    log_extra = {
        "error_code": exc.error_code,
        "details": exc.details
    }

    # Add provider context for provider-specific exceptions
    if hasattr(exc, 'provider'):
        log_extra['provider'] = exc.provider

    logger.error(
        f"Application error: {exc.error_code} - {exc.message}",
        extra=log_extra
    )
    http_exc = to_http_exception(exc)
    return JSONResponse(
        status_code=http_exc.status_code,
        content=jsonable_encoder(http_exc.detail)
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors."""
    errors = jsonable_encoder(exc.errors())
    logger.warning(
        "Request validation failed",
        extra={"errors": errors}
    )
    return JSONResponse(
        status_code=422,
        content={
            "error_code": "VALIDATION_ERROR",
            "message": "Request validation failed",
            "errors": errors
        }
    )


@app.exception_handler(SQLAlchemyError)
async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
    """Handle database errors."""
    logger.error("Database error occurred", exc_info=True)

    # Check if it's a connection error
    if isinstance(exc, OperationalError):
        return JSONResponse(
            status_code=503,
            content={
                "error_code": "DATABASE_CONNECTION_ERROR",
                "message": "Database is temporarily unavailable. Please try again later."
            }
        )

    return JSONResponse(
        status_code=500,
        content={
            "error_code": "DATABASE_ERROR",
            "message": "A database error occurred. Please try again."
        }
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Handle unexpected errors."""
    logger.exception("Unexpected error occurred")
    return JSONResponse(
        status_code=500,
        content={
            "error_code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred. Please try again later."
        }
    )


@app.get("/")
async def root():
    """Root endpoint returning API status and welcome message."""
    return {
        "message": "Welcome to Recipe Generator API",
        "status": "online",
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring service status."""
    generator = active_recipe_generator()
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": "recipe-api",
        "pending_pipelines": generator.pending_count if generator is not None else 0,
    }
