"""FastAPI application factory for Authsome."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from authsome.common.config import get_settings
from authsome.common.exceptions import AuthsomeError
from authsome.common.logging import setup_logging
from authsome.common.schemas import ErrorResponse, HealthResponse

logger = logging.getLogger(__name__)


def _error_response(status_code: int, error: str, code: str, detail: str = "") -> JSONResponse:
    body = ErrorResponse(error=error, code=code, detail=detail)
    return JSONResponse(status_code=status_code, content=body.model_dump())


def create_app() -> FastAPI:
    settings = get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        setup_logging(settings.log_level, json_lines=settings.log_json)
        from authsome.deps import get_db
        db = get_db()
        await db.init()
        await db.create_all()
        yield
        # Shutdown
        await db.close()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(AuthsomeError)
    async def authsome_error_handler(request: Request, exc: AuthsomeError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.code)
        return _error_response(exc.status_code, exc.message, exc.code)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error_response(500, "Internal error", "INTERNAL_ERROR")

    @app.get("/health", response_model=HealthResponse)
    async def health():
        return HealthResponse(version=settings.api_version)

    # Mount routers
    from authsome.auth.router import router as auth_router

    app.include_router(auth_router, prefix=settings.api_prefix, tags=["auth"])

    return app
