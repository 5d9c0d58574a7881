"""FastAPI web server for webcode."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from . import __version__
from .container import build_container
from .errors import DuplicateEntityError, EntityNotFoundError, OperationFailedError, ValidationError
from .routes import git, migration, projects, sessions, settings, templates

logger = logging.getLogger(__name__)

SHUTDOWN_TIMEOUT_SECONDS = 5.0


def create_app(
    db_path: Path | str | None = None,
    projects_path: Path | str | None = None,
    save_delay: float | None = None,
) -> FastAPI:
    """Build the application and its per-process container.

    The container is created eagerly so it is available even when the ASGI
    lifespan is not run; the database itself is opened on first use.
    """
    kwargs = {} if save_delay is None else {"save_delay": save_delay}
    container = build_container(db_path, projects_path, **kwargs)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        container.db.initialize()
        logger.info("webcode started (database %s)", container.db.path)
        yield
        container.close(SHUTDOWN_TIMEOUT_SECONDS)
        logger.info("webcode stopped")

    app = FastAPI(title="webcode", version=__version__, lifespan=lifespan)
    app.state.container = container

    _register_exception_handlers(app)

    for module in (sessions, settings, templates, migration, projects, git):
        app.include_router(module.router)

    @app.get("/health")
    async def health():
        return {"status": "ok", "version": __version__}

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationError)
    async def validation_error(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(EntityNotFoundError)
    async def not_found(request: Request, exc: EntityNotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(DuplicateEntityError)
    async def duplicate(request: Request, exc: DuplicateEntityError):
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(OperationFailedError)
    async def operation_failed(request: Request, exc: OperationFailedError):
        logger.error("%s %s failed: %s (cause: %r)", request.method, request.url.path, exc, exc.__cause__)
        return JSONResponse(status_code=500, content={"detail": "Operation failed"})


app = create_app()
