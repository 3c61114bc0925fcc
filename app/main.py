"""Assistant Chat API - Main Application Module.

This module initializes the FastAPI application with configuration,
middleware, routing and the lifecycle of the database engine and the shared
external-service clients.
"""

import logging
import sys
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

# Add the project root to Python path if running directly
if __name__ == "__main__":
    project_root = Path(__file__).parent.parent
    sys.path.insert(0, str(project_root))

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.clients import ServiceClients
from app.core.config import ConfigValidator, get_config_summary, settings
from app.core.logging import configure_logging
from app.database import AsyncSessionLocal, engine
from models import Base
from models.base import utcnow

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle events."""
    configure_logging(settings)
    logger.info(f"Starting {settings.app_name} {settings.version} ({settings.environment.value})")
    if settings.is_production:
        ConfigValidator.validate_required_settings()

    # Development and testing create tables directly; other environments use alembic
    if settings.is_development or settings.is_testing:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created/verified")
    else:
        logger.info("Schema managed by migrations, run 'alembic upgrade head' to update")

    app.state.clients = ServiceClients.from_settings(settings)

    yield

    logger.info(f"Shutting down {settings.app_name}")
    await app.state.clients.aclose()
    await engine.dispose()
    logger.info("Database connections closed")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        description="Chat backend over a hosted assistant with web search, file handling and thread sharing",
        version=settings.version,
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    setup_middleware(app)
    setup_exception_handlers(app)
    setup_routers(app)

    return app


def setup_middleware(app: FastAPI):
    """Configure application middleware."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition", "X-Request-ID"],
    )

    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


def _error_body(request: Request, message: str, error_code: str, details) -> dict:
    return {
        "status": "error",
        "message": message,
        "error_code": error_code,
        "details": details,
        "timestamp": utcnow().isoformat(),
        "request_id": getattr(request.state, "request_id", None),
    }


def setup_exception_handlers(app: FastAPI):
    """Configure global exception handlers."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        # Application exceptions carry a structured detail
        if isinstance(exc.detail, dict) and "message" in exc.detail:
            message = exc.detail["message"]
            error_code = exc.detail.get("error_code", "HTTP_ERROR")
            details = exc.detail.get("details")
        else:
            message = str(exc.detail) if exc.detail else "An error occurred"
            error_code = "HTTP_ERROR"
            details = None

        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {error_code} {message}")
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, message, error_code, details),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = []
        for error in exc.errors():
            error_dict = {
                "loc": list(error.get("loc", [])),
                "msg": str(error.get("msg", "Validation error")),
                "type": error.get("type", "value_error"),
            }
            if "input" in error:
                error_dict["input"] = str(error["input"])
            errors.append(error_dict)

        return JSONResponse(
            status_code=422,
            content=_error_body(request, "Validation error", "VALIDATION_ERROR", errors),
        )


def setup_routers(app: FastAPI):
    """Configure application routers."""
    from app.domains.chat.controller import router as chat_router
    from app.domains.file.controller import router as file_router
    from app.domains.project.controller import router as project_router
    from app.domains.share.controller import router as share_router
    from app.domains.storage.controller import router as storage_router
    from app.domains.thread.controller import router as thread_router

    @app.get("/health")
    async def health_check():
        """Database reachability plus which integrations are configured."""
        db_status = "healthy"
        try:
            async with AsyncSessionLocal() as session:
                await session.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.error(f"Health check database probe failed: {e}")
            db_status = "unhealthy"

        summary = get_config_summary()
        return JSONResponse(
            status_code=200 if db_status == "healthy" else 503,
            content={
                "status": "healthy" if db_status == "healthy" else "unhealthy",
                "version": settings.version,
                "environment": settings.environment.value,
                "timestamp": utcnow().isoformat(),
                "services": {
                    "database": db_status,
                    "assistant": "configured" if summary["features"]["assistant_configured"] else "not_configured",
                    "web_search": "configured" if summary["features"]["web_search_enabled"] else "not_configured",
                    "blob_storage": "configured" if summary["features"]["blob_storage_enabled"] else "not_configured",
                },
            },
        )

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "name": settings.app_name,
            "version": settings.version,
            "docs_url": "/docs" if settings.is_development else None,
        }

    app.include_router(chat_router)
    app.include_router(project_router)
    app.include_router(thread_router)
    app.include_router(share_router)
    app.include_router(file_router)
    app.include_router(storage_router)


# Create the application instance
app = create_app()


def main():
    """Entry point for running the application directly."""
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_level=settings.log_level.value.lower(),
    )


if __name__ == "__main__":
    main()
