"""FastAPI application entry point.

Partsearch API - auto-parts catalog search and recommendations.
"""

from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator
import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from partsearch.routes import api_router
from partsearch.schemas import ErrorDetail, ErrorResponse
from partsearch.services.engine import reset_catalog_caches
from partsearch.services.errors import CatalogError
from partsearch.settings import get_settings
from partsearch.stores.postgres import init_db, close_db, ping_db
from partsearch.stores.redis import init_redis, close_redis

logger = logging.getLogger("uvicorn.error")


def error_body(code: str, message: str, detail: dict[str, Any] | None = None) -> dict[str, Any]:
    """Structured error payload shared by every handler."""
    return ErrorResponse(
        message=message,
        error=ErrorDetail(code=code, message=message, detail=detail),
    ).model_dump()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown events.
    """
    # Initialize database (skip in tests if no DB available)
    try:
        await init_db()
        await ping_db()
        logger.info("Postgres connected")
    except Exception:
        logger.exception("Postgres init failed")

    # Initialize Redis (optional: sales aggregates are read from Postgres without it)
    try:
        await init_redis()
    except Exception:
        logger.exception("Redis init failed")

    yield

    # Shutdown
    reset_catalog_caches()
    await close_redis()
    await close_db()


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Auto-parts catalog search and recommendation API",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(CatalogError)
    async def catalog_error_handler(request: Request, exc: CatalogError) -> JSONResponse:
        """Domain errors (validation, missing full-text indexes, unknown item)."""
        if exc.status_code >= 500:
            logger.warning(f"[api] {exc.code} path={request.url.path}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.code, exc.message, exc.detail),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Unparseable query parameters use the same 400 shape as domain validation."""
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = str(first.get("loc", ("", ""))[-1]) if first else None
        message = f"Invalid value for {field}." if field else "Invalid request."
        return JSONResponse(
            status_code=400,
            content=error_body(
                "VALIDATION_ERROR",
                message,
                {"field": field, "errors": [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in errors]},
            ),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body("HTTP_ERROR", str(exc.detail)),
        )

    # Exception handler for structured error format
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler returning structured error format."""
        logger.exception(f"[api] unhandled error path={request.url.path}")
        return JSONResponse(
            status_code=500,
            content=error_body(
                "INTERNAL_ERROR",
                str(exc) if settings.debug else "Internal server error",
            ),
        )

    # Health check endpoint
    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, bool]:
        """Health check endpoint."""
        return {"ok": True}

    # Include API routes
    app.include_router(api_router)

    return app


# Application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "partsearch.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
