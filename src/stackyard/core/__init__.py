"""Core modules for Stackyard - error taxonomy and exit codes."""

from stackyard.core.errors import (
    AlreadyExistsError,
    BlueprintError,
    ConfigurationError,
    CyclicDependencyError,
    DependencyUnresolvedError,
    DuplicateResourceError,
    ExitCode,
    ExternalCallFailedError,
    HealthCheckTimeoutError,
    ProviderError,
    ResourceNotFoundError,
    StackyardError,
    StateError,
    StateNotFoundError,
    format_error_message,
    main_with_error_handling,
)

__all__ = [
    "ExitCode",
    "StackyardError",
    # Configuration
    "ConfigurationError",
    "CyclicDependencyError",
    "DependencyUnresolvedError",
    "DuplicateResourceError",
    "BlueprintError",
    "ResourceNotFoundError",
    # State
    "StateError",
    "StateNotFoundError",
    # Providers
    "ProviderError",
    "AlreadyExistsError",
    "ExternalCallFailedError",
    "HealthCheckTimeoutError",
    "main_with_error_handling",
    "format_error_message",
]
