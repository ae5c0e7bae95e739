"""
Unified error handling for Stackyard.

This module provides the error taxonomy shared by the resource graph,
providers and orchestration engine, together with standardized exit
codes and error reporting for CLI commands.

Exit Codes:
- 0: Success
- 1: Warning (run finished but some resources failed)
- 10: Configuration error (cycles, unresolved references, duplicates)
- 11: Provider error (external tool failure, health check timeout)
- 13: State error (state file could not be read or written)
- 127: Unknown/internal error
"""

from __future__ import annotations

import functools
import sys
import traceback
from enum import IntEnum
from typing import Any, Callable, TypeVar

import structlog

logger = structlog.get_logger()


class ExitCode(IntEnum):
    """Standardized exit codes for CLI commands."""

    SUCCESS = 0
    WARNING = 1
    CONFIG_ERROR = 10
    PROVIDER_ERROR = 11
    STATE_ERROR = 13
    UNKNOWN_ERROR = 127


class StackyardError(Exception):
    """Base exception for Stackyard errors with exit code support."""

    exit_code: ExitCode = ExitCode.UNKNOWN_ERROR
    show_traceback: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    @property
    def resource(self) -> str | None:
        """Identifier of the resource the error refers to, if any."""
        return self.details.get("resource")


class ConfigurationError(StackyardError):
    """Raised for blueprint and graph configuration errors.

    Configuration errors are always reported before any external call is made.
    """

    exit_code = ExitCode.CONFIG_ERROR


class CyclicDependencyError(ConfigurationError):
    """Raised when the dependency references form a cycle."""

    def __init__(self, cycle: list[str]):
        super().__init__(
            f"cyclic dependency between resources: {' -> '.join(cycle)}",
            {"cycle": cycle},
        )
        self.cycle = cycle


class DependencyUnresolvedError(ConfigurationError):
    """Raised when a dependency reference does not resolve to the expected resource."""

    def __init__(self, reference: str, message: str, resource: str | None = None):
        details: dict[str, Any] = {"reference": reference}
        if resource:
            details["resource"] = resource
        super().__init__(message, details)
        self.reference = reference


class DuplicateResourceError(ConfigurationError):
    """Raised when a resource identifier is added to a graph twice."""


class BlueprintError(ConfigurationError):
    """Raised when a blueprint file can not be parsed."""


class ResourceNotFoundError(StackyardError):
    """Raised when no resource matches an identifier."""

    exit_code = ExitCode.CONFIG_ERROR


class StateError(StackyardError):
    """Raised when the state file can not be read or written."""

    exit_code = ExitCode.STATE_ERROR


class StateNotFoundError(StateError):
    """Raised when no state file exists, i.e. no environment is running."""


class ProviderError(StackyardError):
    """Raised when a provider fails to create or destroy a resource."""

    exit_code = ExitCode.PROVIDER_ERROR

    def __init__(self, resource: str, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, {"resource": resource, **(details or {})})


class AlreadyExistsError(ProviderError):
    """Raised when an external object already uses the resource's identifier."""

    def __init__(self, resource: str, ids: list[str] | None = None):
        super().__init__(
            resource,
            f"{resource} already exists",
            {"ids": ids or []},
        )


class ExternalCallFailedError(ProviderError):
    """Wraps a failure of an external tool or API."""

    def __init__(self, resource: str, action: str, cause: BaseException):
        super().__init__(resource, f"{action} failed for {resource}: {cause}")
        self.action = action
        self.cause = cause


class HealthCheckTimeoutError(ProviderError):
    """Raised when a resource was created but never became ready."""

    def __init__(self, resource: str, message: str, cause: BaseException | None = None):
        super().__init__(resource, message)
        self.cause = cause


# Type variable for decorated functions
F = TypeVar("F", bound=Callable[..., int])


def main_with_error_handling(
    *,
    show_traceback: bool = False,
    log_errors: bool = True,
) -> Callable[[F], F]:
    """
    Decorator for CLI commands that provides unified error handling.

    Catches exceptions and converts them to appropriate exit codes with
    consistent error reporting.

    Args:
        show_traceback: If True, show full traceback for unexpected errors
        log_errors: If True, log errors to structlog

    Exit codes:
        - StackyardError subclasses: Uses the error's exit_code
        - KeyboardInterrupt: Returns 130 (standard for SIGINT)
        - Other exceptions: Returns 127 (unknown error)
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> int:
            try:
                return func(*args, **kwargs)
            except StackyardError as e:
                if log_errors:
                    logger.error(
                        "command_error",
                        error_type=type(e).__name__,
                        message=e.message,
                        exit_code=e.exit_code,
                        **e.details,
                    )
                if e.show_traceback or show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return e.exit_code
            except KeyboardInterrupt:
                if log_errors:
                    logger.info("command_interrupted")
                return 130  # Standard exit code for SIGINT
            except Exception as e:
                if log_errors:
                    logger.error(
                        "unexpected_error",
                        error_type=type(e).__name__,
                        message=str(e),
                        exit_code=ExitCode.UNKNOWN_ERROR,
                    )
                if show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return ExitCode.UNKNOWN_ERROR

        return wrapper  # type: ignore[return-value]

    return decorator


def format_error_message(error: StackyardError) -> str:
    """Format an error message for display to users."""
    msg = error.message
    if error.details:
        detail_str = ", ".join(f"{k}={v}" for k, v in error.details.items())
        msg = f"{msg} ({detail_str})"
    return msg
