"""
reconforge/probe/server.py
Minimal HTTP surface for a route-checker run.

Served by uvicorn on the same event loop as the FetchPool, so results can be
downloaded while the run is still in progress and after it finishes.

Routes:
- GET /         status + help
- GET /results  the JSON-lines result file as an attachment
"""

from __future__ import annotations

import asyncio
import logging
import socket
from pathlib import Path
from typing import List, Optional, Sequence

import httpx
import uvicorn
from fastapi import FastAPI
from fastapi.responses import FileResponse, JSONResponse

from reconforge.probe.models import FetchResult, summarize
from reconforge.probe.pool import FetchPool
from reconforge.probe.sink import ResultSink, write_snapshot
from reconforge.utils.async_helpers import create_safe_task

logger = logging.getLogger(__name__)


def create_probe_app(pool: FetchPool, sink: ResultSink, base_url: str) -> FastAPI:
    app = FastAPI(title="ReconForge route checker", version="1.0.0")

    @app.get("/")
    async def probe_status():
        return {
            "baseUrl": base_url,
            "running": pool.running,
            "total": pool.total,
            "completed": len(pool.results),
            "summary": summarize(pool.results),
            "routes": {
                "/": "this status/help document",
                "/results": f"download {sink.path.name} (one JSON result per line)",
            },
        }

    @app.get("/results")
    async def download_results():
        if not sink.exists():
            return JSONResponse(status_code=404, content={"error": "results not found"})
        return FileResponse(sink.path, filename=sink.path.name, media_type="application/x-ndjson")

    return app


def snapshot_path(output: Path) -> Path:
    """route-results.jsonl -> route-results.json"""
    return output.with_suffix(".json") if output.suffix != ".json" else output.with_name(output.stem + ".final.json")


def bind_listener(host: str, port: int) -> Optional[socket.socket]:
    """
    Bind and listen on (host, port) for the results server.

    Returns None when the address cannot be bound (e.g. port already in use).
    """
    sock = socket.socket(socket.AF_INET6 if ":" in host else socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
        sock.listen(128)
    except OSError as exc:
        sock.close()
        logger.warning(f"Results server disabled: cannot listen on {host}:{port}: {exc}")
        return None
    sock.setblocking(False)
    return sock


async def run_probe(
    base_url: str,
    suffixes: Sequence[str],
    *,
    concurrency: int,
    timeout: float,
    output: Path,
    port: Optional[int],
    host: str = "127.0.0.1",
    delay: float = 0.05,
    keep_serving: bool = True,
    client: Optional[httpx.AsyncClient] = None,
) -> List[FetchResult]:
    """
    Run the FetchPool with the embedded results server alongside it.

    With ``keep_serving`` the server stays up after the run until interrupted.
    Pass ``port=None`` to skip the server entirely. If the port cannot be
    bound the run continues without a server.
    """
    sink = ResultSink(output)
    pool = FetchPool(client=client, sink=sink, delay=delay)

    server: Optional[uvicorn.Server] = None
    server_task: Optional[asyncio.Task] = None
    listener = bind_listener(host, port) if port is not None else None
    if listener is not None:
        app = create_probe_app(pool, sink, base_url)
        server = uvicorn.Server(uvicorn.Config(app, log_level="warning"))
        server_task = create_safe_task(server.serve(sockets=[listener]), name="probe-server")
        bound_port = listener.getsockname()[1]
        logger.info(f"Results server listening on http://{host}:{bound_port}/")

    try:
        results = await pool.run(base_url, suffixes, concurrency=concurrency, timeout=timeout)
        final = snapshot_path(Path(output))
        if write_snapshot(final, results):
            logger.info(f"Results written to {final}")
        if server_task is not None and keep_serving:
            logger.info(f"Run finished; still serving http://{host}:{bound_port}/results (Ctrl+C to stop)")
            await asyncio.shield(server_task)
    finally:
        if server is not None and server_task is not None:
            server.should_exit = True
            await asyncio.gather(server_task, return_exceptions=True)
        if listener is not None:
            listener.close()

    return results
