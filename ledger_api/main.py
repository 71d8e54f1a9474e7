"""
FastAPI application factory and entry point.

This module creates and configures the FastAPI application:
  1. Lifespan manager — owns the Database handle (create tables, dispose)
  2. CORS middleware — allows frontend origins to make cross-origin requests
  3. Exception handlers — maps domain errors to the uniform error body
  4. Router registration — mounts the API endpoint groups under API_PREFIX

Running locally:
    uvicorn ledger_api.main:app --reload

Or through the console script, which also applies the graceful shutdown
timeout from settings:
    ledger-api
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ledger_api import models  # noqa: F401  (registers tables on Base.metadata)
from ledger_api.config import Settings, get_settings
from ledger_api.database import Database
from ledger_api.exceptions import register_exception_handlers
from ledger_api.logging_config import setup_logging
from ledger_api.routers import accounts, reports, transactions


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Build a configured FastAPI application.

    Args:
        settings: Explicit settings (tests), or None for get_settings().
    """
    settings = settings or get_settings()
    logger = setup_logging(settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Startup:
          Builds the Database handle and creates all tables if they don't
          exist. In production you'd manage the schema with migrations.

        Shutdown:
          Disposes of the engine, closing all pooled connections.
        """
        # --- Startup ---
        database = Database(settings.DATABASE_URL, echo=settings.DEBUG)
        await database.create_all()
        app.state.database = database
        logger.info("Database ready", extra={"dialect": database.engine.dialect.name})
        yield
        # --- Shutdown ---
        await database.dispose()
        logger.info("Database connections closed")

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Banking ledger REST API: deposits, withdrawals, transfers and reports",
        lifespan=lifespan,
    )

    # -----------------------------------------------------------------------
    # Middleware
    # -----------------------------------------------------------------------

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -----------------------------------------------------------------------
    # Exception handlers
    # -----------------------------------------------------------------------

    register_exception_handlers(app)

    # -----------------------------------------------------------------------
    # Routers
    # -----------------------------------------------------------------------

    prefix = settings.API_PREFIX
    app.include_router(transactions.router, prefix=f"{prefix}/transactions", tags=["Transactions"])
    app.include_router(accounts.router, prefix=f"{prefix}/accounts", tags=["Accounts"])
    app.include_router(reports.router, prefix=f"{prefix}/reports", tags=["Reports"])

    # -----------------------------------------------------------------------
    # Health check
    # -----------------------------------------------------------------------

    @app.get("/health", tags=["Health"])
    async def health_check():
        """
        Liveness probe for deployments (Kubernetes, Docker, etc.).

        Doesn't touch the database: it reports that the process is up and
        serving requests.
        """
        return {
            "status": "ok",
            "version": settings.APP_VERSION,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    return app


app = create_app()


def run() -> None:
    """Console-script entry point: serve the app with uvicorn."""
    settings = get_settings()
    uvicorn.run(
        "ledger_api.main:app",
        host=settings.HOST,
        port=settings.PORT,
        timeout_graceful_shutdown=settings.SHUTDOWN_TIMEOUT_SECONDS,
    )
