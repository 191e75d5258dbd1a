"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from instancevol import __version__
from instancevol.app.api.dependencies import close_reconciler, init_reconciler
from instancevol.app.api.v1 import volumes_router
from instancevol.app.config import get_settings
from instancevol.app.logging import setup_logging
from instancevol.app.middleware import LoggingMiddleware
from instancevol.core.errors import VolumeError
from instancevol.core.logging_schema import LogEvent

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    await init_reconciler()
    logger.info("Starting application", extra={"event": LogEvent.APP_STARTED})

    yield

    logger.info("Shutting down application", extra={"event": LogEvent.APP_STOPPED})
    await close_reconciler()


app = FastAPI(title="instancevol", version=__version__, lifespan=lifespan)
app.add_middleware(LoggingMiddleware)


@app.exception_handler(VolumeError)
async def volume_error_handler(request: Request, exc: VolumeError) -> JSONResponse:
    """Handle VolumeError exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response().model_dump(),
    )


app.include_router(volumes_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": __version__}


def main() -> None:
    """Run the API server."""
    settings = get_settings()
    uvicorn.run(
        "instancevol.app.main:app",
        host=settings.server.host,
        port=settings.server.port,
        reload=False,
    )


if __name__ == "__main__":
    main()
