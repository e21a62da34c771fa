# backend/app/main.py
from __future__ import annotations

from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
import logging
import time
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.routing import APIRoute

from .core.constants import BRAND_NAME, REQUEST_ID_HEADER
from .core.config import is_running_tests, settings
from .core.request_context import configure_logging, reset_request_id, set_request_id
from .core.ulid_helper import generate_ulid
from .database import init_db
from .errors import register_error_handlers
from .monitoring.prometheus_metrics import prometheus_metrics
from .routes import health, prometheus
from .routes.v1 import ROUTERS

logger = logging.getLogger(__name__)

API_TITLE = f"{BRAND_NAME} API"
API_DESCRIPTION = "Car wash booking, capacity and partner operations backend"
API_VERSION = "1.0.0"


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown without deprecated events."""
    logger.info(f"{BRAND_NAME} API starting up...")
    logger.info(f"Environment: {settings.environment}")

    if is_running_tests():
        logger.info("Running under pytest (test mode active)")

    if settings.auto_create_tables:
        init_db()
        logger.info("Database tables ensured")

    yield

    logger.info(f"{BRAND_NAME} API shutting down...")


def _unique_operation_id(route: APIRoute) -> str:
    methods = "_".join(sorted(m.lower() for m in route.methods or []))
    return f"{route.name}_{methods}"


async def request_context_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Bind a request id to the logging context and time the request."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or generate_ulid()
    token = set_request_id(request_id)
    start = time.perf_counter()
    try:
        response = await call_next(request)
        route = request.scope.get("route")
        endpoint = getattr(route, "path", None) or request.url.path
        prometheus_metrics.record_http_request(
            request.method, endpoint, time.perf_counter() - start, response.status_code
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
    finally:
        reset_request_id(token)


def create_app() -> FastAPI:
    configure_logging(settings.log_level)

    app = FastAPI(
        title=API_TITLE,
        description=API_DESCRIPTION,
        version=API_VERSION,
        lifespan=app_lifespan,
        generate_unique_id_function=_unique_operation_id,
    )

    app.middleware("http")(request_context_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )

    register_error_handlers(app)

    api = APIRouter(prefix=settings.api_prefix)
    for router in ROUTERS:
        api.include_router(router)
    app.include_router(api)

    # Infrastructure routes stay unversioned
    app.include_router(health.router)
    app.include_router(prometheus.router)

    return app


app = create_app()
