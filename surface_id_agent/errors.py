"""
Error types for the Surface ID Agent.

Configuration errors are fatal at startup; assignment and host errors are
local to one surface event. Registry I/O errors never leave the registry
client and therefore have no type here.
"""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorCode(Enum):
    """
    Error codes for the Surface ID Agent.

    - 1000-1099: Configuration errors
    - 1100-1199: Assignment errors
    - 1200-1299: Host errors
    """

    # Configuration errors (1000-1099)
    CONFIG_LOAD_FAILED = 1000
    CONFIG_NOT_FOUND = 1001
    SCHEMA_ERROR = 1002
    DUPLICATE_SURFACE_ID = 1003
    SURFACE_ID_IN_DEFAULT_RANGE = 1004
    EMPTY_RULE = 1005
    NO_VALID_CONFIG = 1006

    # Assignment errors (1100-1199)
    SURFACE_ID_IN_USE = 1100

    # Host errors (1200-1299)
    HOST_IPC_FAILED = 1201


class AgentError(Exception):
    """Base exception for Surface ID Agent errors."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        suggestion: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize agent error.

        Args:
            code: Error code from ErrorCode enum
            message: Human-readable error message
            suggestion: Suggested recovery action
            context: Additional context for debugging
        """
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.context = context or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert error to dictionary for structured log records.

        Returns:
            Error dictionary with code, message, suggestion, and context
        """
        result = {
            "code": self.code.value,
            "message": self.message
        }

        if self.suggestion:
            result["suggestion"] = self.suggestion

        if self.context:
            result["context"] = self.context

        return result


class ConfigLoadError(AgentError):
    """Configuration file could not be read or parsed."""

    def __init__(self, file_path: str, reason: str, code: ErrorCode = ErrorCode.CONFIG_LOAD_FAILED):
        """
        Initialize configuration load error.

        Args:
            file_path: Path to configuration file
            reason: Reason for load failure
            code: Specific error code (defaults to CONFIG_LOAD_FAILED)
        """
        super().__init__(
            code=code,
            message=f"Failed to load configuration from {file_path}: {reason}",
            suggestion="Check file syntax and permissions",
            context={"file_path": file_path, "reason": reason}
        )


class RuleConfigError(AgentError):
    """Rule set failed validation; nothing from it was accepted."""

    def __init__(self, code: ErrorCode, message: str, surface_id: Optional[int] = None):
        context = {}
        if surface_id is not None:
            context["surface_id"] = surface_id

        super().__init__(
            code=code,
            message=message,
            suggestion="Fix the [desktop-app] sections and restart the agent",
            context=context
        )


class SurfaceIdInUseError(AgentError):
    """The host refused an id because another surface holds it."""

    def __init__(self, surface_id: int, holder: Any = None):
        super().__init__(
            code=ErrorCode.SURFACE_ID_IN_USE,
            message=f"surface_id {surface_id} is already used by another surface",
            context={"surface_id": surface_id, "holder": repr(holder)}
        )
        self.surface_id = surface_id
        self.holder = holder


class HostConnectionError(AgentError):
    """Compositor IPC communication error."""

    def __init__(self, operation: str, reason: str):
        """
        Initialize host connection error.

        Args:
            operation: IPC operation that failed
            reason: Reason for failure
        """
        super().__init__(
            code=ErrorCode.HOST_IPC_FAILED,
            message=f"Compositor IPC {operation} failed: {reason}",
            suggestion="Ensure Sway is running and SWAYSOCK is set",
            context={"operation": operation, "reason": reason}
        )
