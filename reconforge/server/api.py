# reconforge/server/api.py
# FastAPI application for the scan job API

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from reconforge.base.config import ReconConfig, get_config, setup_logging
from reconforge.engine.coordinator import JobCoordinator
from reconforge.errors import ErrorCode, ReconError, handle_error
from reconforge.server.routers import scans, system
from reconforge.server.state import get_state

logger = logging.getLogger(__name__)


def create_app(coordinator: Optional[JobCoordinator] = None) -> FastAPI:
    """
    Build the job API.

    Without an explicit coordinator the process-wide one from ApplicationState
    is used.
    """
    coordinator = coordinator or get_state().coordinator

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        coordinator.config.ensure_dirs()
        logger.info(f"[API] scans directory: {coordinator.config.storage.scans_path}")
        yield
        await coordinator.shutdown()

    app = FastAPI(
        title="ReconForge API",
        description="Subdomain discovery and HTTP probing jobs",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.coordinator = coordinator

    @app.exception_handler(ReconError)
    async def recon_error_handler(request: Request, exc: ReconError):
        """Convert ReconError into a JSON response with its mapped status."""
        logger.warning(f"[API] {exc.code.value}: {exc.message}")
        return JSONResponse(status_code=exc.http_status, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        err = ReconError(ErrorCode.SCAN_TARGET_INVALID, "invalid request body", details={"errors": str(exc)})
        return JSONResponse(status_code=400, content=err.to_dict())

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        err = handle_error(exc, context=f"{request.method} {request.url.path}")
        logger.error(f"[API] {err.message}", exc_info=exc)
        return JSONResponse(status_code=err.http_status, content=err.to_dict())

    # system first: /status/health must win over /status/{job_id}
    app.include_router(system.router)
    app.include_router(scans.router)
    return app


def serve(config: Optional[ReconConfig] = None, host: Optional[str] = None, port: Optional[int] = None) -> None:
    """Run the job API under uvicorn (blocking)."""
    cfg = config or get_config()
    setup_logging(cfg)
    coordinator = JobCoordinator(config=cfg)
    get_state().coordinator = coordinator
    app = create_app(coordinator)
    bind_host = host or cfg.api_host
    bind_port = port or cfg.api_port
    logger.info(f"listening on {bind_host}:{bind_port}")
    uvicorn.run(app, host=bind_host, port=bind_port, log_level="debug" if cfg.debug else "info")
