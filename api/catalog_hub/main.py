# catalog_hub/main.py
# Catalog Hub - product variant catalog + wastage ledger
from __future__ import annotations
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from catalog_hub.settings import settings
from catalog_hub.database import Database, check_db_health
from catalog_hub.errors import CatalogError, PersistenceError
from catalog_hub.routers.products import router as products_router
from catalog_hub.routers.wastage import router as wastage_router

API_VERSION = "0.1.0"
API_PREFIX = "/api/v2"

# ---------------------------------------------------------
# Logging setup
# ---------------------------------------------------------
from catalog_hub.logging_setup import setup_logging
setup_logging(settings)

logger = logging.getLogger(__name__)


def create_app(database: Optional[Database] = None) -> FastAPI:
    """
    Build the app. A ``database`` passed in is used as-is and left open on
    shutdown; otherwise one is built from settings in the lifespan.
    """

    # ---------------------------------------------------------
    # Lifespan: Database init/cleanup
    # ---------------------------------------------------------
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown events."""
        owned = database is None
        if owned:
            app.state.database = Database.from_settings(settings)
            if settings.DB_CREATE_TABLES:
                await app.state.database.create_all()
            logger.info("Database engine ready")
        yield
        if owned:
            await app.state.database.dispose()
            logger.info("Database engine disposed")

    app = FastAPI(
        title="Catalog Hub API",
        version=API_VERSION,
        description="Product variant catalog and wastage ledger",
        lifespan=lifespan,
    )
    if database is not None:
        app.state.database = database

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ---------------------------------------------------------
    # Error mapping
    # ---------------------------------------------------------
    @app.exception_handler(CatalogError)
    async def catalog_error_handler(request: Request, exc: CatalogError):
        if isinstance(exc, PersistenceError):
            logger.error("%s %s failed: %s", request.method, request.url.path, exc, exc_info=exc)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_error_handler(request: Request, exc: SQLAlchemyError):
        # reads run outside Database.transaction(), so they arrive unwrapped
        logger.exception("%s %s failed", request.method, request.url.path, exc_info=exc)
        err = PersistenceError(details={"error": exc.__class__.__name__})
        return JSONResponse(status_code=err.status_code, content=err.to_dict())

    app.include_router(products_router, prefix=API_PREFIX)
    app.include_router(wastage_router, prefix=API_PREFIX)

    # ---------------------------------------------------------
    # Endpoints
    # ---------------------------------------------------------
    @app.get("/health")
    async def health(request: Request):
        """Health check endpoint with database status."""
        db_health = await check_db_health(getattr(request.app.state, "database", None))
        return {
            "status": "ok" if db_health.get("status") == "healthy" else "degraded",
            "version": API_VERSION,
            "database": db_health,
        }

    return app


app = create_app()
