"""Pytest configuration for ReconForge."""
import os

import pytest

from reconforge.base.config import LogConfig, ReconConfig, StorageConfig, ToolConfig, set_config


def pytest_configure():
    # Keep test runs from writing a log file into the real home directory.
    os.environ.setdefault("RECONFORGE_LOG_FILE", "false")


@pytest.fixture
def recon_config(tmp_path):
    """Config rooted in tmp_path, with tool binaries that cannot exist on PATH."""
    cfg = ReconConfig(
        storage=StorageConfig(base_dir=tmp_path / "data"),
        tools=ToolConfig(
            subfinder_bin="reconforge-missing-subfinder",
            amass_bin="reconforge-missing-amass",
            httpx_bin="reconforge-missing-httpx",
            subfinder_timeout=5,
            amass_timeout=5,
            httpx_timeout=5,
        ),
        log=LogConfig(file_enabled=False),
    )
    cfg.ensure_dirs()
    set_config(cfg)
    yield cfg
    set_config(None)
