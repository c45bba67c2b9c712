from __future__ import annotations

import logging
import shutil
from typing import Any, Dict

from fastapi import APIRouter, Depends

from reconforge.engine.coordinator import JobCoordinator
from reconforge.server.state import get_coordinator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["system"])


@router.get("/health")
@router.get("/status/health")
async def health_check() -> Dict[str, Any]:
    """Simple health check endpoint."""
    return {"ok": True}


@router.get("/tools")
async def list_tools(coordinator: JobCoordinator = Depends(get_coordinator)) -> Dict[str, Any]:
    """Which pipeline binaries are currently resolvable on PATH."""
    tools = coordinator.config.tools
    binaries = {
        "subfinder": tools.subfinder_bin,
        "amass": tools.amass_bin,
        "httpx": tools.httpx_bin,
    }
    return {
        name: {"binary": binary, "installed": shutil.which(binary) is not None}
        for name, binary in binaries.items()
    }
