"""
Router initialization module.

Exports all API routers for the ReconForge job API.
"""
from reconforge.server.routers import scans, system

__all__ = [
    "scans",
    "system",
]
