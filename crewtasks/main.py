"""crewtasks - recurring task board for front-line crews."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from crewtasks.core.config import constants, settings
from crewtasks.core.errors import StoreUnavailableError, classify_error_with_response
from crewtasks.core.logging import configure_logfire, instrument_fastapi
from crewtasks.core.store_factory import build_change_relay, build_repository
from crewtasks.interface.api_router import router as api_router
from crewtasks.services.seed import seed_if_empty


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    # Configure logging first so startup logs are captured
    configure_logfire()

    repository = build_repository(settings)
    await repository.connect()
    relay = None
    try:
        relay = build_change_relay(settings, repository)
        if relay is not None:
            await relay.start()

        if settings.seed_demo_data:
            admin_pin = settings.require_credential("admin_pin", "Administrator PIN")
            await seed_if_empty(repo=repository, admin_pin=admin_pin)

        app.state.repository = repository
        app.state.change_relay = relay
        logger.info(
            "startup_complete", extra={"storage_backend": settings.storage_backend, "relay": relay is not None}
        )
        yield
    finally:
        # Shutdown, also reached when startup fails part way
        if relay is not None:
            await relay.stop()
        await repository.close()


app = FastAPI(
    title="crewtasks",
    description="Recurring task board for front-line crews",
    version="0.1.0",
    lifespan=lifespan,
)

# Instrument FastAPI with Logfire
instrument_fastapi(app)

# Register routers
app.include_router(api_router)


@app.exception_handler(StoreUnavailableError)
async def store_unavailable_handler(_request: Request, exc: StoreUnavailableError) -> JSONResponse:
    """Report store failures without retrying."""
    logger.error("store_unavailable", extra={"error": str(exc)})
    response = classify_error_with_response(exc)
    return JSONResponse(content=response.model_dump(mode="json"), status_code=constants.HTTP_SERVICE_UNAVAILABLE)


@app.exception_handler(ValueError)
async def invalid_input_handler(_request: Request, exc: ValueError) -> JSONResponse:
    """Reject invalid form input."""
    response = classify_error_with_response(exc)
    return JSONResponse(content=response.model_dump(mode="json"), status_code=400)


@app.exception_handler(KeyError)
async def not_found_handler(_request: Request, exc: KeyError) -> JSONResponse:
    """Report unknown records."""
    response = classify_error_with_response(exc)
    return JSONResponse(content=response.model_dump(mode="json"), status_code=404)


@app.get("/health")
async def health_check(request: Request) -> JSONResponse:
    """Health check endpoint."""
    relay = getattr(request.app.state, "change_relay", None)
    relay_status = "disabled"
    if relay is not None:
        relay_status = "ok" if await relay.ping() else "unavailable"
    return JSONResponse(
        content={"status": "healthy", "storage_backend": settings.storage_backend, "change_relay": relay_status},
        status_code=constants.HTTP_OK,
    )
