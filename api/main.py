"""
FastAPI application factory for the Note Insights API.

The service is stateless: callers post their article set with every request
and receive derived dashboard views, KPI results or ingestion batches back.
"""

import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.adapters import list_adapters
from api.config import get_settings
from api.engine import __version__ as engine_version
from api.routers import articles, dashboard, ingestion, kpis, system
from api.utils.logging import configure_logging, get_logger

configure_logging()
logger = get_logger(__name__)

# (router module, mount prefix, OpenAPI tag)
ROUTERS = (
    (dashboard, "/api/v1/dashboard", "Dashboard"),
    (kpis, "/api/v1/kpis", "KPIs"),
    (ingestion, "/api/v1/ingestion", "Ingestion"),
    (articles, "/api/v1/articles", "Articles"),
    (system, "/api/v1/system", "System"),
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Log the effective rollup configuration on startup."""
    settings = get_settings()

    logger.info(
        "application_startup",
        version=app.version,
        environment=settings.app_env,
        proposal_classification=settings.proposal_classification_name,
        spike_stddev_multiplier=settings.spike_stddev_multiplier,
        above_average_multiplier=settings.above_average_multiplier,
        ingestion_sources=list_adapters(),
    )

    yield

    logger.info("application_shutdown")


def create_app() -> FastAPI:
    """
    Application factory.
    Wires CORS, request tracing, the validation error envelope and routers.
    """
    settings = get_settings()

    app = FastAPI(
        title="Note Insights API",
        description="Article performance rollups across the publishing platform and X",
        version=engine_version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    @app.middleware("http")
    async def request_tracing_middleware(request: Request, call_next):
        """Bind a request id for log correlation and time the request."""
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id, path=request.url.path)
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_failed",
                method=request.method,
                error=str(e),
                exc_info=True,
            )
            return JSONResponse(
                status_code=500,
                content={
                    "success": False,
                    "error": "Internal server error",
                    "request_id": request_id,
                },
                headers={"X-Request-ID": request_id},
            )

        response.headers["X-Request-ID"] = request_id
        logger.info(
            "request_completed",
            method=request.method,
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        """Malformed articles, dates or sort keys in a request body."""
        errors = exc.errors()
        logger.warning("request_validation_failed", errors=len(errors))
        return JSONResponse(
            status_code=422,
            content={
                "success": False,
                "error": "Request validation failed",
                "detail": jsonable_errors(errors),
            },
        )

    @app.get("/health", tags=["System"])
    async def health_check():
        """Liveness probe for load balancers."""
        return {
            "status": "healthy",
            "version": app.version,
            "environment": settings.app_env,
        }

    for module, prefix, tag in ROUTERS:
        app.include_router(module.router, prefix=prefix, tags=[tag])

    logger.info("application_configured", routers_count=len(ROUTERS))
    return app


def jsonable_errors(errors) -> list[dict]:
    """Keep only the JSON-safe parts of pydantic error entries."""
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in errors
    ]


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
        log_level=settings.log_level.lower(),
    )
