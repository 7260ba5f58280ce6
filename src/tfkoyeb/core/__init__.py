"""Core modules for tfkoyeb - centralized error definitions."""

from tfkoyeb.core.errors import (
    AmbiguousReferenceError,
    ConfigurationError,
    ExitCode,
    InvalidReferenceError,
    KoyebError,
    ProviderError,
    ReferenceNotFoundError,
    ResourceNotFoundError,
    UpstreamError,
    ValidationError,
    WaitTimeoutError,
    format_error_message,
    main_with_error_handling,
)

__all__ = [
    "ExitCode",
    "KoyebError",
    "ConfigurationError",
    "ProviderError",
    "ValidationError",
    "UpstreamError",
    "InvalidReferenceError",
    "ReferenceNotFoundError",
    "AmbiguousReferenceError",
    "ResourceNotFoundError",
    "WaitTimeoutError",
    "main_with_error_handling",
    "format_error_message",
]
