"""FastAPI application factory."""

import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from simple_tax.api.routes import health_router, invoice_item_router, invoice_router
from simple_tax.config import get_settings
from simple_tax.container import reset_container
from simple_tax.exceptions import SimpleTaxError
from simple_tax.logging_config import configure_logging, get_logger, log_context

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings = get_settings()
    configure_logging(settings)
    logger.info(
        "application_starting",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment.value,
    )

    yield

    logger.info("application_stopping")
    reset_container()


async def log_request_middleware(request: Request, call_next):
    """Middleware to add request context to logs."""
    request_id = str(uuid.uuid4())[:8]
    with log_context(request_id=request_id, path=request.url.path, method=request.method):
        response = await call_next(request)
        logger.debug("request_completed", status_code=response.status_code)
        return response


async def exception_handler(request: Request, exc: SimpleTaxError) -> JSONResponse:
    """Handle domain exceptions and return appropriate JSON responses."""
    logger.warning(
        "domain_exception",
        error_code=exc.error_code,
        message=exc.message,
        context=exc.context,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Tax codes of invoice items",
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.middleware("http")(log_request_middleware)
    app.add_exception_handler(SimpleTaxError, exception_handler)

    app.include_router(health_router)
    app.include_router(invoice_router)
    app.include_router(invoice_item_router)

    return app


# Create app instance for uvicorn
app = create_app()
