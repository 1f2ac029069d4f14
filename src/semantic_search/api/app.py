"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from semantic_search import __version__
from semantic_search.api import routes
from semantic_search.config import ServiceConfig, get_config
from semantic_search.core.errors import SemanticSearchError
from semantic_search.engine.container import ServiceContainer, build_container
from semantic_search.observability import init_tracing, shutdown_tracing

logger = logging.getLogger(__name__)


async def handle_service_error(request: Request, exc: SemanticSearchError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message} ({exc.details})")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = "; ".join(
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
    )
    return JSONResponse(status_code=400, content={"error": "Invalid request", "details": errors})


def create_app(
    config: ServiceConfig | None = None,
    container: ServiceContainer | None = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        config: Service config (loaded from env if omitted)
        container: Pre-wired container (tests); built from config if omitted
    """
    if container is None:
        container = build_container(config or get_config())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_tracing()
        container.startup()
        try:
            yield
        finally:
            container.shutdown()
            shutdown_tracing()

    app = FastAPI(
        title="Semantic Search",
        description="Similarity-ranked document search over text embeddings",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.container = container

    app.add_exception_handler(SemanticSearchError, handle_service_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)

    app.include_router(routes.router)

    @app.get("/")
    def root():
        """API root - returns basic info."""
        return {
            "name": "Semantic Search",
            "version": __version__,
            "docs": "/docs",
        }

    return app


def main() -> None:
    """Run the API server."""
    import uvicorn

    config = get_config()
    uvicorn.run(create_app(config), host=config.host, port=config.port)
