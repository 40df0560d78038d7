"""FastAPI application entry point."""

import os
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from quotedesk.api.routes import router
from quotedesk.config.logging_config import setup_logging
from quotedesk.config.settings import settings
from quotedesk.core.exceptions import QuoteDeskError
from quotedesk.runtime import build_services


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    services = build_services(settings)
    services.cache.start_sweeper(settings.cache_sweep_interval_seconds)
    app.state.services = services
    yield
    await services.aclose()


def create_app() -> FastAPI:
    app = FastAPI(title="quotedesk", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.app_base_url],
        allow_methods=["GET", "DELETE"],
        allow_headers=["*"],
    )
    app.include_router(router)

    @app.exception_handler(QuoteDeskError)
    async def quotedesk_error_handler(request: Request, exc: QuoteDeskError) -> JSONResponse:
        return JSONResponse(
            status_code=500,
            content={"error": exc.code, "details": exc.message},
        )

    return app


app = create_app()


def serve() -> None:
    port = int(os.environ.get("QUOTEDESK_PORT", "8000"))
    uvicorn.run(app, host="127.0.0.1", port=port)
