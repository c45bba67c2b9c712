#!/usr/bin/env python3
"""ReconForge command line: job API server, one-off scans, and the route checker."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from reconforge.base.config import get_config, setup_logging
from reconforge.errors import ReconError

logger = logging.getLogger(__name__)


def run_server(args):
    """Launch the job API."""
    from reconforge.server.api import serve
    serve(host=args.host, port=args.port)
    return 0


def run_scan(args):
    """Run one recon job in-process and print its final status."""
    from reconforge.engine.coordinator import JobCoordinator

    cfg = get_config()
    setup_logging(cfg)
    cfg.ensure_dirs()

    async def _scan():
        coordinator = JobCoordinator(config=cfg)
        job_id = await coordinator.submit(args.hostname)
        return await coordinator.wait(job_id)

    try:
        snapshot = asyncio.run(_scan())
    except ReconError as exc:
        print(exc.message, file=sys.stderr)
        return 1
    print(json.dumps(snapshot, indent=2))
    return 0 if snapshot["status"] == "done" else 1


def run_probe_cmd(args):
    """Probe every suffix from the suffix file beneath the base URL."""
    from reconforge.probe.models import summarize
    from reconforge.probe.server import run_probe
    from reconforge.probe.sink import load_suffixes

    cfg = get_config()
    setup_logging(cfg)

    try:
        suffixes = load_suffixes(args.suffixes)
    except ReconError as exc:
        print(exc.message, file=sys.stderr)
        return 2

    if not suffixes:
        print(f"{args.suffixes} is empty (or only comments). Nothing to check.")
        return 0

    print(f"Base URL: {args.base_url}")
    print(f"Items to try: {len(suffixes)}")
    print(f"Concurrency: {args.concurrency}, Timeout: {args.timeout}s")

    try:
        results = asyncio.run(run_probe(
            args.base_url,
            suffixes,
            concurrency=args.concurrency,
            timeout=args.timeout,
            output=Path(args.output),
            port=None if args.no_serve else args.port,
            host=args.host,
            delay=cfg.probe.delay,
        ))
    except KeyboardInterrupt:
        print("\nStopped.")
        return 0

    counts = summarize(results)
    print(f"Total: {counts['total']}, OK(2xx): {counts['OK']}, Redirects: {counts['REDIRECT']}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    cfg = get_config()
    parser = argparse.ArgumentParser(prog="reconforge", description="ReconForge command deck")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    server_parser = subparsers.add_parser("server", help="Start the scan job API")
    server_parser.add_argument("--host", default=None, help=f"Bind address (default {cfg.api_host})")
    server_parser.add_argument("--port", type=int, default=None, help=f"Port (default {cfg.api_port})")
    server_parser.set_defaults(func=run_server)

    scan_parser = subparsers.add_parser("scan", help="Run one recon job and wait for it")
    scan_parser.add_argument("hostname", help="Target hostname, e.g. example.com")
    scan_parser.set_defaults(func=run_scan)

    probe_parser = subparsers.add_parser("probe", help="Check routes beneath a base URL")
    probe_parser.add_argument("base_url", help="Base URL, e.g. https://www.example.com/")
    probe_parser.add_argument("--suffixes", default="try.txt", help="File with one suffix per line")
    probe_parser.add_argument("--concurrency", type=int, default=cfg.probe.concurrency)
    probe_parser.add_argument("--timeout", type=float, default=cfg.probe.timeout, help="Seconds per request")
    probe_parser.add_argument("--output", default=cfg.probe.output, help="Append-only JSON-lines result file")
    probe_parser.add_argument("--host", default="127.0.0.1", help="Results server bind address")
    probe_parser.add_argument("--port", type=int, default=cfg.probe.port, help="Results server port")
    probe_parser.add_argument("--no-serve", action="store_true", help="Exit when done instead of serving results")
    probe_parser.set_defaults(func=run_probe_cmd)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1
    if args.command == "probe" and args.concurrency < 1:
        parser.error("--concurrency must be at least 1")
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
