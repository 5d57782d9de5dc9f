import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic.alias_generators import to_camel

from img2prompt.api.v1.api import api_router
from img2prompt.core.config import settings
from img2prompt.core.exceptions import AppError
from img2prompt.core.logging_config import setup_logging
from img2prompt.db.init_db import init_db

logger = logging.getLogger(__name__)


def create_tables() -> None:
    """Create database tables when the database task store is in use."""
    if settings.TASK_STORE_BACKEND.lower() == "database":
        init_db()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown logic."""
    if not settings.TESTING:
        setup_logging()
        create_tables()
    yield


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render application errors as ``{"detail": ...}`` JSON bodies."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    else:
        logger.info(
            "%s %s rejected (%d): %s",
            request.method,
            request.url.path,
            exc.status_code,
            exc,
        )
    body = {"detail": exc.message}
    body.update({to_camel(key): value for key, value in exc.extra.items()})
    return JSONResponse(status_code=exc.status_code, content=body)


def create_app() -> FastAPI:
    """Factory to create FastAPI app instance."""
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.PROJECT_VERSION,
        description="API for turning images into text prompts",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        lifespan=lifespan,
    )

    if settings.BACKEND_CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=[
                str(origin) for origin in settings.BACKEND_CORS_ORIGINS
            ],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_exception_handler(AppError, app_error_handler)

    # Mount API routers
    app.include_router(api_router, prefix=settings.API_V1_STR)

    # Internal system endpoints
    @app.get("/", include_in_schema=False)
    async def root() -> dict[str, str]:
        return {
            "message": "Welcome to the Image to Prompt API",
            "version": settings.PROJECT_VERSION,
            "docs": "/docs",
        }

    @app.get(f"{settings.API_V1_STR}/health", include_in_schema=False)
    async def health_check() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
