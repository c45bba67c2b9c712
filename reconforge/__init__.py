"""ReconForge: recon pipeline jobs and a bounded-concurrency route checker."""

__version__ = "1.0.0"
