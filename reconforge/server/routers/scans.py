from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse
from pydantic import AliasChoices, BaseModel, Field, field_validator

from reconforge.engine.coordinator import JobCoordinator
from reconforge.errors import ErrorCode, ReconError
from reconforge.server.state import get_coordinator
from reconforge.toolkit.normalizer import extract_host

logger = logging.getLogger(__name__)

router = APIRouter(tags=["scans"])


class ScanRequest(BaseModel):
    # Accepts {"target": ...} or the legacy {"url": ...}
    target: Optional[str] = Field(
        default=None,
        max_length=2048,
        validation_alias=AliasChoices("target", "url"),
    )

    @field_validator("target")
    @classmethod
    def strip_target(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return v.strip() or None


def hostname_from_target(target: Optional[str]) -> str:
    """A URL or a bare hostname; returns the hostname part."""
    if not target:
        raise ReconError(ErrorCode.SCAN_TARGET_MISSING, "target required")
    try:
        return extract_host(target)
    except ValueError:
        logger.warning(f"Scan rejected: unparseable target {target!r}")
        raise ReconError(ErrorCode.SCAN_TARGET_INVALID, "invalid url", details={"target": target}) from None


@router.post("/scan")
async def start_scan(req: ScanRequest, coordinator: JobCoordinator = Depends(get_coordinator)) -> Dict[str, Any]:
    hostname = hostname_from_target(req.target)
    job_id = await coordinator.submit(hostname)
    return {"jobId": job_id, "message": "scan started"}


@router.get("/jobs")
async def list_jobs(coordinator: JobCoordinator = Depends(get_coordinator)) -> List[Dict[str, Any]]:
    return await coordinator.list_jobs()


@router.get("/status/{job_id}")
async def job_status(job_id: str, coordinator: JobCoordinator = Depends(get_coordinator)) -> Dict[str, Any]:
    return await coordinator.status(job_id)


@router.get("/download/{job_id}")
async def download_results(job_id: str, coordinator: JobCoordinator = Depends(get_coordinator)):
    path = coordinator.results_path(job_id)
    return FileResponse(path, filename=f"results-{job_id}.txt", media_type="text/plain")


@router.delete("/results/{job_id}")
async def delete_results(job_id: str, coordinator: JobCoordinator = Depends(get_coordinator)) -> Dict[str, Any]:
    deleted = await coordinator.cancel(job_id)
    return {"jobId": job_id, "deleted": deleted}
