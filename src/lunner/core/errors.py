"""Error handling module for lunner.

This module defines error codes and the exception classes that terminate
the node. Database errors never appear here: the election engine absorbs
them into a conservative verdict.

Usage:
    from lunner.core.errors import ConfigError, HookSpawnError

    # Raise with default message
    raise ConfigError()

    # Raise with custom message
    raise ConfigError("Couldn't open config file: ./lunner.yml")
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Error codes."""

    CONFIG_INVALID = "CONFIG_INVALID"
    HOOK_SPAWN_FAILED = "HOOK_SPAWN_FAILED"


class LunnerError(Exception):
    """Base exception for lunner.

    All lunner specific exceptions should inherit from this class.
    The CLI maps them to a process exit status.

    Attributes:
        code: The error code from ErrorCode enum
        message: Human-readable error message
        exit_code: Process exit status used by the CLI
    """

    def __init__(self, code: ErrorCode, message: str, exit_code: int) -> None:
        self.code = code
        self.message = message
        self.exit_code = exit_code
        super().__init__(message)


class ConfigError(LunnerError):
    """Missing or malformed configuration (exit 2)."""

    def __init__(self, message: str = "Invalid configuration") -> None:
        super().__init__(ErrorCode.CONFIG_INVALID, message, 2)


class HookSpawnError(LunnerError):
    """A role hook process could not be started (exit 1)."""

    def __init__(self, role: str, cmd: str, reason: str = "") -> None:
        self.role = role
        self.cmd = cmd
        message = f"Couldn't execute become-{role} hook '{cmd}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(ErrorCode.HOOK_SPAWN_FAILED, message, 1)
