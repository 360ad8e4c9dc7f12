"""
tablebridge Web API - FastAPI application.

Build with ``create_app()``; uvicorn runs it as a factory
(``tablebridge.web.app:create_app``) so nothing touches the database at
import time.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import Engine
from starlette.exceptions import HTTPException as StarletteHTTPException

from tablebridge import __version__
from tablebridge.config import Settings, get_settings
from tablebridge.core.cache import ForeignKeyCache, SchemaCache
from tablebridge.db.client import create_db_engine
from tablebridge.db.crud import CrudExecutor
from tablebridge.db.introspect import SchemaIntrospector
from tablebridge.errors import TableBridgeError
from tablebridge.web.foreign_key_routes import router as foreign_key_router
from tablebridge.web.table_routes import router as table_router

logger = logging.getLogger(__name__)


def _format_request_errors(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        parts.append(f"{location}: {error.get('msg')}")
    return "; ".join(parts) or "Invalid request"


def register_error_handlers(app: FastAPI) -> None:
    """Every error response is ``{"error": <message>}``."""

    @app.exception_handler(TableBridgeError)
    async def handle_engine_error(request: Request, exc: TableBridgeError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        else:
            logger.warning(f"{request.method} {request.url.path} rejected: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        message = _format_request_errors(exc)
        logger.warning(f"{request.method} {request.url.path} rejected: {message}")
        return JSONResponse(status_code=400, content={"error": message})

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


def create_app(settings: Settings | None = None, engine: Engine | None = None) -> FastAPI:
    """
    Build the application.

    The engine, introspector and caches are created here, once, and shared
    by every request through ``app.state.executor``.

    Args:
        settings: Explicit settings (defaults to environment / .env)
        engine: Pre-built engine, e.g. for tests. Not disposed on shutdown.
    """
    owns_engine = engine is None
    if engine is None:
        settings = settings or get_settings()
        engine = create_db_engine(settings)

    introspector = SchemaIntrospector(engine)
    executor = CrudExecutor(
        engine,
        introspector,
        schema_cache=SchemaCache(introspector),
        fk_cache=ForeignKeyCache(introspector),
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"tablebridge {__version__} starting up...")
        logger.info(f"  Dialect: {engine.dialect.name}")
        if settings is not None:
            logger.info(f"  Environment: {settings.tablebridge_env}")
        yield
        if owns_engine:
            engine.dispose()
            logger.info("Database engine disposed")

    # Interactive docs are a development aid; production serves only the API
    show_docs = settings is None or not settings.is_production
    app = FastAPI(
        title="tablebridge",
        version=__version__,
        lifespan=lifespan,
        debug=settings is not None and settings.is_development,
        docs_url="/docs" if show_docs else None,
        redoc_url="/redoc" if show_docs else None,
        openapi_url="/openapi.json" if show_docs else None,
    )
    app.state.executor = executor

    if settings is not None and settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    register_error_handlers(app)
    app.include_router(table_router, prefix="/api")
    app.include_router(foreign_key_router, prefix="/api")

    @app.get("/health")
    async def health_check():
        """Liveness probe."""
        return {"status": "healthy", "version": __version__}

    return app
