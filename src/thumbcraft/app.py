"""FastAPI application factory."""

# Import timezone enforcement (sets TZ=UTC)
from contextlib import asynccontextmanager
from pathlib import Path

import httpx
import structlog
from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text

from thumbcraft.api.routes import thumbnails
from thumbcraft.core import timezone  # noqa: F401
from thumbcraft.core.config import Settings, configure_logging
from thumbcraft.core.database import create_tables, setup_db_session
from thumbcraft.services.assets.base import build_publisher
from thumbcraft.services.image_generation.orchestrator import GenerationOrchestrator
from thumbcraft.services.image_generation.provider_table import build_adapter_chain
from thumbcraft.services.rate_limit import InMemoryRateLimitStore, RateLimiter
from thumbcraft.uow import create_uow_factory
from thumbcraft.workers.generation_worker import GenerationRunner, recover_orphaned_jobs

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager.

    Handles startup and shutdown tasks:
    - Startup: Configure logging, open the database, build the provider chain,
      fail jobs orphaned by a previous process, start the runner
    - Shutdown: Cancel in-flight jobs (they end failed/interrupted), close clients
    """
    # Load settings
    settings = Settings()  # type: ignore[call-arg]

    # Configure logging
    configure_logging(settings)

    # Setup database session factory
    session_factory = setup_db_session(settings.database_url, settings.db_pool_size)
    if settings.database_url.startswith("sqlite"):
        # Local development without Postgres; Alembic is not run for SQLite
        await create_tables(session_factory.kw["bind"])

    # Create UoW factory for dependency injection
    uow_factory = create_uow_factory(session_factory)

    # Shared outbound HTTP client for providers and the asset store
    http_client = httpx.AsyncClient(timeout=settings.provider_timeout_seconds)

    adapters = build_adapter_chain(settings, client=http_client)
    publisher = build_publisher(settings, client=http_client)
    orchestrator = GenerationOrchestrator(adapters, publisher, uow_factory)
    runner = GenerationRunner(orchestrator)
    rate_limiter = RateLimiter(
        InMemoryRateLimitStore(),
        limit=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )

    # Recover before accepting requests so live jobs are never touched
    try:
        await recover_orphaned_jobs(uow_factory)
    except Exception as e:
        # Log error but don't prevent startup
        logger.error(
            "startup.recovery_failed",
            error=str(e),
            error_type=type(e).__name__,
        )

    # Store in app.state for access in routes
    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.uow_factory = uow_factory
    app.state.rate_limiter = rate_limiter
    app.state.runner = runner

    logger.info(
        "application.startup",
        db_url=settings.database_url.split("@")[-1],
        providers=[a.provider_id for a in adapters],
        asset_publisher=settings.asset_publisher,
    )

    yield

    # Shutdown: Cancel in-flight generations and close outbound connections
    logger.info("application.shutdown", in_flight=runner.in_flight)
    await runner.shutdown()
    await http_client.aclose()


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Map request validation failures to 400 instead of FastAPI's default 422."""
    logger.info("request.validation_failed", path=request.url.path, errors=len(exc.errors()))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Invalid request", "errors": jsonable_errors(exc)},
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", "")}
        for error in exc.errors()
    ]


def create_app() -> FastAPI:
    """Create and configure FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    settings = Settings()  # type: ignore[call-arg]

    app = FastAPI(
        title="Thumbcraft Backend API",
        description="AI thumbnail generation with multi-provider fallback",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]

    # Register API routers
    app.include_router(thumbnails.router)  # Router has prefix="/api/thumbnails" in definition

    # Serve locally published assets
    if settings.asset_publisher == "local":
        asset_dir = Path(settings.asset_dir)
        asset_dir.mkdir(parents=True, exist_ok=True)
        app.mount("/assets", StaticFiles(directory=asset_dir), name="assets")

    # Health check endpoint with database validation
    @app.get("/health")
    async def health_check(response: Response):
        """Health check endpoint with database connectivity test.

        Returns:
            200: {"status": "healthy"} if database connection succeeds
            503: {"status": "unhealthy", "error": {...}} if database connection fails
        """
        try:
            # Test database connection with simple query
            async with app.state.session_factory() as session:
                result = await session.execute(text("SELECT 1"))
                result.scalar()

            logger.debug("health_check.success")
            return {"status": "healthy"}

        except Exception as e:
            # Log error and return unhealthy status
            logger.error(
                "health_check.failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
            return {
                "status": "unhealthy",
                "error": {
                    "type": type(e).__name__,
                    "message": str(e),
                },
            }

    return app


# Create app instance for uvicorn
app = create_app()
