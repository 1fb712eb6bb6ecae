from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Callable, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .errors import NotFoundError, StorageError, ValidationError
from .importer import import_seed, load_seed_file
from .logging_config import RequestLoggerMiddleware, setup_logging
from .repositories import Repository, build_repository
from .routers import insights as insights_router
from .routers import mcp as mcp_router
from .routers import todos as todos_router
from .settings import Settings, get_settings
from .tools import TodoToolbox

log = structlog.get_logger()

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {"name": "todos", "description": "CRUD operations for Todo items, listed in priority order."},
    {"name": "profile", "description": "The single user profile."},
    {"name": "analysis", "description": "Canned task analysis and scheduling advice."},
    {"name": "mcp", "description": "JSON-RPC tool invocation over the same operations."},
]


def _install_exception_handlers(app: FastAPI) -> None:
    # Global exception handlers for consistent JSON on validation errors
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """
        Return a consistent JSON structure for request validation errors.

        Response format:
            {
                "error": "ValidationError",
                "detail": [... pydantic/fastapi error details ...],
                "message": "Request validation failed"
            }
        """
        return JSONResponse(
            status_code=422,
            content={
                "error": "ValidationError",
                "message": "Request validation failed",
                "detail": jsonable_encoder(exc.errors()),
            },
        )

    @app.exception_handler(ValidationError)
    async def store_validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={"error": exc.kind, "message": exc.message, "detail": []},
        )

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": exc.detail})

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
        log.error("storage failure", path=request.url.path, error=exc.message)
        return JSONResponse(
            status_code=500,
            content={"error": exc.kind, "message": "Storage operation failed"},
        )


# PUBLIC_INTERFACE
def create_app(
    repository: Optional[Repository] = None,
    settings: Optional[Settings] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> FastAPI:
    """
    Build the FastAPI application around one explicitly owned repository.

    When no repository is passed, one is built from settings; the app then
    owns it, imports SEED_DATA_PATH on startup if set, and closes it on
    shutdown. A repository passed in stays owned by the caller.
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level, settings.log_format)
    owns_repository = repository is None
    repo = repository if repository is not None else build_repository(settings)
    clock = clock or datetime.now

    @asynccontextmanager
    async def lifespan(application: FastAPI) -> AsyncIterator[None]:
        log.info("application starting", backend=repo.backend)
        if owns_repository and settings.seed_data_path:
            count = import_seed(repo, load_seed_file(settings.seed_data_path))
            log.info("seed data imported", path=settings.seed_data_path, todos=count)
        yield
        if owns_repository:
            repo.close()
        log.info("application stopped")

    app = FastAPI(
        title="Todo Assistant Backend",
        description="Personal task tracking with priority ordering, canned analysis and tool invocation.",
        version="0.1.0",
        openapi_tags=openapi_tags,
        lifespan=lifespan,
    )
    app.state.repository = repo
    app.state.toolbox = TodoToolbox(repo, clock=clock)
    app.state.clock = clock
    app.state.settings = settings

    # Configure CORS based on settings (.env -> CORS_ALLOW_ORIGINS), with '*' fallback
    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=not allow_all,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggerMiddleware)
    _install_exception_handlers(app)

    # PUBLIC_INTERFACE
    @app.get("/", summary="Health Check", tags=["health"])
    def health_check():
        """
        Health check endpoint.

        Returns:
            A JSON object indicating service health.
        """
        return {"message": "Healthy", "backend": repo.backend}

    app.include_router(todos_router.router)
    app.include_router(insights_router.router)
    app.include_router(mcp_router.router)
    return app


app = create_app()
