from typing import Optional


class ToolInvocationError(Exception):
    """Base exception for a failed external-tool invocation."""

    def __init__(self, command: str, message: str, elapsed: float = 0.0):
        super().__init__(message)
        self.command = command
        self.elapsed = elapsed


class ToolNotInstalledError(ToolInvocationError):
    """Raised when the tool binary cannot be found in PATH."""
    def __init__(self, command: str, elapsed: float = 0.0):
        super().__init__(command, f"{command} not installed or not in PATH", elapsed)


class ToolTimeoutError(ToolInvocationError):
    """Raised when a tool exceeded its timeout and was killed."""
    def __init__(self, command: str, timeout: float, elapsed: float):
        super().__init__(command, f"{command} timed out after {timeout}s", elapsed)
        self.timeout = timeout


class ToolExitError(ToolInvocationError):
    """Raised when a tool exited with a non-zero return code."""
    def __init__(self, command: str, returncode: Optional[int], stderr: str, elapsed: float):
        super().__init__(command, f"{command} exited {returncode}: {stderr.strip()}", elapsed)
        self.returncode = returncode
        self.stderr = stderr


class InvalidTransitionError(Exception):
    """Raised when a job status change would break the lifecycle ordering."""
    def __init__(self, job_id: str, current: str, requested: str):
        super().__init__(f"job {job_id}: illegal transition {current} -> {requested}")
        self.job_id = job_id
        self.current = current
        self.requested = requested
