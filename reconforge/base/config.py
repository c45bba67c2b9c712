# ============================================================================
# reconforge/base/config.py
# Application Configuration Management
# ============================================================================
#
# PURPOSE:
# Defines every tunable setting of ReconForge: where job artifacts live, which
# tool binaries the recon pipeline runs and for how long, how the route prober
# behaves, and how logging is set up.
#
# KEY CONCEPTS:
# 1. Dataclasses: frozen containers, one per concern
# 2. Environment Variables: RECONFORGE_* overrides (e.g., RECONFORGE_DATA_DIR)
# 3. Singleton: one shared config, replaceable in tests via set_config()
#
# ============================================================================

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"[config] {name}={raw!r} is not an integer; using {default}")
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"[config] {name}={raw!r} is not a number; using {default}")
        return default


# ============================================================================
# File Storage Configuration
# ============================================================================
# Each job gets its own directory under <base_dir>/<scans_dir>/scan-<job id>.

@dataclass(frozen=True)
class StorageConfig:
    # Base directory for all ReconForge data (~/.reconforge by default)
    base_dir: Path = field(default_factory=lambda: Path.home() / ".reconforge")

    # Subdirectory holding one folder per scan job
    scans_dir: str = "scans"

    @property
    def scans_path(self) -> Path:
        return self.base_dir / self.scans_dir

    def job_dir(self, job_id: str) -> Path:
        return self.scans_path / f"scan-{job_id}"


# ============================================================================
# External Tool Configuration
# ============================================================================
# Binary names and wall-clock limits (seconds) for the recon pipeline stages.
# A tool that exceeds its limit is killed and the stage is marked timed-out.

@dataclass(frozen=True)
class ToolConfig:
    subfinder_bin: str = "subfinder"
    amass_bin: str = "amass"
    httpx_bin: str = "httpx"

    subfinder_timeout: float = 120.0
    amass_timeout: float = 180.0
    httpx_timeout: float = 180.0


# ============================================================================
# Route Probe Configuration
# ============================================================================
# Defaults for the standalone route checker (FetchPool + embedded server).

@dataclass(frozen=True)
class ProbeConfig:
    # How many requests may be in flight at once
    concurrency: int = 10

    # Per-request timeout (seconds); exceeded requests are classified ERROR
    timeout: float = 8.0

    # Politeness delay after each request (seconds)
    delay: float = 0.05

    # Append-only JSON-lines file receiving each result as it completes
    output: str = "route-results.jsonl"

    # Port of the embedded results server
    port: int = 3001


# ============================================================================
# Logging Configuration
# ============================================================================

@dataclass(frozen=True)
class LogConfig:
    level: str = "INFO"
    format: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

    # Also write to <base_dir>/<file_name> with rotation
    file_enabled: bool = True
    file_name: str = "reconforge.log"
    max_file_size_mb: int = 10
    backup_count: int = 5


# ============================================================================
# Master Configuration Container
# ============================================================================

@dataclass
class ReconConfig:
    storage: StorageConfig = field(default_factory=StorageConfig)
    tools: ToolConfig = field(default_factory=ToolConfig)
    probe: ProbeConfig = field(default_factory=ProbeConfig)
    log: LogConfig = field(default_factory=LogConfig)

    debug: bool = False

    # 127.0.0.1 = only accessible from this computer
    api_host: str = "127.0.0.1"
    api_port: int = 3000

    def ensure_dirs(self) -> None:
        """Create the storage directories if they don't exist yet."""
        self.storage.base_dir.mkdir(parents=True, exist_ok=True)
        self.storage.scans_path.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_env(cls) -> "ReconConfig":
        """Build a ReconConfig from RECONFORGE_* environment variables."""
        base_dir = Path(os.getenv("RECONFORGE_DATA_DIR", str(Path.home() / ".reconforge")))
        storage = StorageConfig(
            base_dir=base_dir,
            scans_dir=os.getenv("RECONFORGE_SCANS_DIR", "scans"),
        )

        tools = ToolConfig(
            subfinder_bin=os.getenv("RECONFORGE_SUBFINDER_BIN", "subfinder"),
            amass_bin=os.getenv("RECONFORGE_AMASS_BIN", "amass"),
            httpx_bin=os.getenv("RECONFORGE_HTTPX_BIN", "httpx"),
            subfinder_timeout=_env_float("RECONFORGE_SUBFINDER_TIMEOUT", 120.0),
            amass_timeout=_env_float("RECONFORGE_AMASS_TIMEOUT", 180.0),
            httpx_timeout=_env_float("RECONFORGE_HTTPX_TIMEOUT", 180.0),
        )

        probe = ProbeConfig(
            concurrency=_env_int("RECONFORGE_PROBE_CONCURRENCY", 10),
            timeout=_env_float("RECONFORGE_PROBE_TIMEOUT", 8.0),
            delay=_env_float("RECONFORGE_PROBE_DELAY", 0.05),
            output=os.getenv("RECONFORGE_PROBE_OUTPUT", "route-results.jsonl"),
            port=_env_int("RECONFORGE_PROBE_PORT", 3001),
        )

        log = LogConfig(
            level=os.getenv("RECONFORGE_LOG_LEVEL", "INFO"),
            file_enabled=os.getenv("RECONFORGE_LOG_FILE", "true").lower() == "true",
        )

        # PORT is honoured for parity with common PaaS conventions
        api_port = _env_int("RECONFORGE_API_PORT", _env_int("PORT", 3000))

        return cls(
            storage=storage,
            tools=tools,
            probe=probe,
            log=log,
            debug=os.getenv("RECONFORGE_DEBUG", "false").lower() == "true",
            api_host=os.getenv("RECONFORGE_API_HOST", "127.0.0.1"),
            api_port=api_port,
        )


# ============================================================================
# Global Configuration Singleton
# ============================================================================

_config: Optional[ReconConfig] = None


def get_config() -> ReconConfig:
    """Return the shared configuration, loading it from the environment once."""
    global _config
    if _config is None:
        _config = ReconConfig.from_env()
    return _config


def set_config(config: Optional[ReconConfig]) -> None:
    """
    Replace the global configuration (mainly used for testing).

    Passing None forces the next get_config() call to reload from the
    environment.
    """
    global _config
    _config = config


def setup_logging(config: Optional[ReconConfig] = None) -> None:
    """
    Configure Python's logging system based on our settings.

    Sets up console logging plus an optional rotating log file.
    Call this once at application startup.
    """
    cfg = config or get_config()

    handlers: List[logging.Handler] = [logging.StreamHandler()]

    if cfg.log.file_enabled:
        from logging.handlers import RotatingFileHandler
        cfg.storage.base_dir.mkdir(parents=True, exist_ok=True)
        log_path = cfg.storage.base_dir / cfg.log.file_name
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=cfg.log.max_file_size_mb * 1024 * 1024,
            backupCount=cfg.log.backup_count,
        )
        handlers.append(file_handler)

    level = "DEBUG" if cfg.debug else cfg.log.level.upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format=cfg.log.format,
        handlers=handlers,
        force=True,
    )
