"""
SkillGauge FastAPI Application

Adaptive assessment engine: sessions, knowledge gaps and knowledge maps.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from skillgauge import __version__
from skillgauge.api.v1 import assessments
from skillgauge.assessment import SessionManager
from skillgauge.config import settings
from skillgauge.core.database import close_db, engine
from skillgauge.core.logging import configure_logging

logger = logging.getLogger(__name__)


async def check_database() -> dict[str, Any]:
    """Round-trip a trivial query against the configured database."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        return {"status": "unhealthy", "error": str(e)}
    return {"status": "healthy"}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan events.

    Startup:
    - Configure logging
    - Verify database connection

    Shutdown:
    - Cancel session timers and flush pending result persistence
    - Close database connections
    """
    configure_logging(settings.LOG_LEVEL)
    logger.info("SkillGauge starting (environment=%s)", settings.ENVIRONMENT)

    database = await check_database()
    if database["status"] != "healthy":
        logger.error("Database connection failed: %s", database["error"])
        raise RuntimeError(f"Database unavailable: {database['error']}")
    logger.info("Database connection verified (%s)", engine.url.get_backend_name())

    yield

    logger.info("SkillGauge shutting down")
    await app.state.session_manager.close()
    await close_db()
    logger.info("Shutdown complete")


def create_app() -> FastAPI:
    """Create and configure FastAPI application.

    Returns:
        Configured FastAPI app instance
    """
    app = FastAPI(
        title="SkillGauge",
        description="Adaptive assessment engine with knowledge gap analysis",
        version=__version__,
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
        lifespan=lifespan,
    )
    app.state.session_manager = SessionManager(assessments.open_repository, settings=settings)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.is_local else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/", tags=["Health"])
    async def root() -> dict[str, str]:
        """Service identity."""
        return {
            "service": "SkillGauge",
            "status": "operational",
            "version": __version__,
            "environment": settings.ENVIRONMENT,
        }

    @app.get("/health", tags=["Health"], response_model=None)
    async def health_check() -> JSONResponse:
        """Database reachability and session manager load.

        Returns 503 when any check is unhealthy.
        """
        manager: SessionManager = app.state.session_manager
        checks: dict[str, dict[str, Any]] = {
            "database": await check_database(),
            "sessions": {
                "status": "healthy",
                "live": manager.live_count,
                "pending_persistence": manager.pending_persistence,
            },
        }

        all_healthy = all(check["status"] == "healthy" for check in checks.values())
        status_code = 200 if all_healthy else 503

        return JSONResponse(
            status_code=status_code,
            content={
                "status": "healthy" if all_healthy else "unhealthy",
                "environment": settings.ENVIRONMENT,
                "checks": checks,
            },
        )

    @app.get("/health/live", tags=["Health"])
    async def liveness_check() -> dict[str, str]:
        """Process liveness; does not touch the database."""
        return {"status": "alive"}

    app.include_router(assessments.router, prefix="/api/v1/assessments", tags=["Assessments"])

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "skillgauge.main:app",
        host="0.0.0.0",  # nosec B104 - Intentional for containerized deployment
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
