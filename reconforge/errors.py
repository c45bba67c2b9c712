"""Structured error taxonomy for ReconForge."""
#
# PURPOSE:
# Provides error codes and a typed exception that carries an HTTP status,
# so the API layer can turn any failure into a consistent JSON payload.
#
# ERROR CODE FORMAT:
# - SCAN_XXX: Job submission / job lookup errors
# - ARTIFACT_XXX: Per-job artifact errors (download, removal)
# - PROBE_XXX: Route probing errors
# - SYSTEM_XXX: Anything else
#
# USAGE:
#   from reconforge.errors import ReconError, ErrorCode
#
#   raise ReconError(
#       ErrorCode.JOB_NOT_FOUND,
#       "job not found",
#       details={"job_id": job_id}
#   )
#
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    # Scan / job errors
    SCAN_TARGET_INVALID = "SCAN_001"
    SCAN_TARGET_MISSING = "SCAN_002"
    JOB_NOT_FOUND = "SCAN_003"

    # Artifact errors
    RESULTS_NOT_FOUND = "ARTIFACT_001"
    ARTIFACT_REMOVE_FAILED = "ARTIFACT_002"

    # Probe errors
    PROBE_SUFFIXES_UNREADABLE = "PROBE_001"

    # System errors
    SYSTEM_INTERNAL_ERROR = "SYSTEM_001"


class ReconError(Exception):
    """
    Base exception for ReconForge with structured error information.

    Attributes:
        code: ErrorCode enum value (e.g., "SCAN_001")
        message: Human-readable error message
        details: Optional dictionary with additional context
        http_status: Suggested HTTP status code for API responses
    """

    HTTP_STATUS_MAP: Dict[ErrorCode, int] = {
        ErrorCode.SCAN_TARGET_INVALID: 400,   # Bad Request
        ErrorCode.SCAN_TARGET_MISSING: 400,
        ErrorCode.JOB_NOT_FOUND: 404,         # Not Found
        ErrorCode.RESULTS_NOT_FOUND: 404,
        ErrorCode.ARTIFACT_REMOVE_FAILED: 500,
        ErrorCode.PROBE_SUFFIXES_UNREADABLE: 400,
        ErrorCode.SYSTEM_INTERNAL_ERROR: 500,
    }

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        http_status: Optional[int] = None
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        self.http_status = http_status or self.HTTP_STATUS_MAP.get(code, 500)

        # Build exception message with code for easy debugging
        super().__init__(f"[{code.value}] {message}")

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert error to dictionary for JSON serialization.

        The ``error`` key mirrors ``message`` so simple clients can read a
        single field.
        """
        return {
            "error": self.message,
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
            "http_status": self.http_status
        }


def handle_error(error: Exception, context: Optional[str] = None) -> ReconError:
    """
    Convert a generic exception to a ReconError.

    Args:
        error: The original exception
        context: Optional context string (e.g., "while removing job artifacts")

    Returns:
        ReconError with appropriate code and message
    """
    if isinstance(error, ReconError):
        return error

    error_type = type(error).__name__
    message = str(error) or error_type
    if context:
        message = f"{context}: {message}"

    return ReconError(
        code=ErrorCode.SYSTEM_INTERNAL_ERROR,
        message=message,
        details={
            "original_type": error_type,
            "original_message": str(error)
        }
    )


__all__ = ["ErrorCode", "ReconError", "handle_error"]
