"""
Unified error handling for tfkoyeb.

Every failure raised by the identifier mapper, the status waiter, the API
client and the provider layer derives from KoyebError, so callers can turn
any of them into a user-visible diagnostic with an exit code.

Exit Codes:
- 0: Success
- 10: Configuration error
- 11: Provider error (upstream API failure, wait timeout)
- 12: Validation error (bad or unresolvable reference)
- 127: Unknown/internal error
- 130: Interrupted (Ctrl-C while waiting)
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
    CONFIG_ERROR = 10
    PROVIDER_ERROR = 11
    VALIDATION_ERROR = 12
    INTERRUPTED = 130
    UNKNOWN_ERROR = 127


class KoyebError(Exception):
    """Base exception for tfkoyeb errors with exit code support."""

    exit_code: ExitCode = ExitCode.UNKNOWN_ERROR
    show_traceback: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(KoyebError):
    """Raised for configuration-related errors."""

    exit_code = ExitCode.CONFIG_ERROR


class ProviderError(KoyebError):
    """Raised when the Koyeb API or a wait on it fails."""

    exit_code = ExitCode.PROVIDER_ERROR


class ValidationError(KoyebError):
    """Raised for validation failures."""

    exit_code = ExitCode.VALIDATION_ERROR


class UpstreamError(ProviderError):
    """Failure reported by the Koyeb API (network, auth, server error)."""


class InvalidReferenceError(ValidationError):
    """Reference is empty or not in the form its kind expects."""

    def __init__(self, kind: str, reference: str, reason: str):
        super().__init__(
            f"Invalid {kind} reference '{reference}': {reason}",
            {"kind": kind, "reference": reference},
        )
        self.kind = kind
        self.reference = reference


class ReferenceNotFoundError(ValidationError):
    """No resource of the given kind carries the referenced name."""

    def __init__(self, kind: str, reference: str):
        super().__init__(
            f"{kind} '{reference}' not found",
            {"kind": kind, "reference": reference},
        )
        self.kind = kind
        self.reference = reference


class AmbiguousReferenceError(ValidationError):
    """Several resources of the given kind carry the referenced name."""

    def __init__(self, kind: str, reference: str, count: int):
        super().__init__(
            f"{kind} '{reference}' is ambiguous: {count} resources match, use the ID instead",
            {"kind": kind, "reference": reference, "count": count},
        )
        self.kind = kind
        self.reference = reference
        self.count = count


class ResourceNotFoundError(ProviderError):
    """Resource disappeared while waiting for it to reach a status."""

    def __init__(self, label: str):
        super().__init__(f"{label} not found", {"label": label})
        self.label = label


class WaitTimeoutError(ProviderError):
    """Resource did not reach a target status before the deadline."""

    def __init__(
        self,
        label: str,
        target_statuses: list[str],
        timeout: float,
        last_status: str | None = None,
    ):
        super().__init__(
            f"{label} failed to reach status {', '.join(target_statuses)} after {timeout:g}s",
            {"label": label, "last_status": last_status, "timeout": f"{timeout:g}s"},
        )
        self.label = label
        self.target_statuses = target_statuses
        self.last_status = last_status


Command = TypeVar("Command", bound=Callable[..., int])


def main_with_error_handling(
    *,
    show_traceback: bool = False,
    log_errors: bool = True,
) -> Callable[[Command], Command]:
    """
    Turn a CLI command's exceptions into exit codes.

    A KoyebError exits with its own code after printing a one-line
    diagnostic; Ctrl-C (which also cancels a running wait) exits with 130.
    """

    def decorator(command: Command) -> Command:
        @functools.wraps(command)
        def wrapper(*args: Any, **kwargs: Any) -> int:
            try:
                return command(*args, **kwargs)
            except KoyebError as e:
                if log_errors:
                    cause = e.__cause__
                    logger.error(
                        "command_failed",
                        command=command.__name__,
                        error_type=type(e).__name__,
                        exit_code=int(e.exit_code),
                        cause=type(cause).__name__ if cause else None,
                        **e.details,
                    )
                print(f"Error: {format_error_message(e)}", file=sys.stderr)
                if show_traceback or e.show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return e.exit_code
            except KeyboardInterrupt:
                if log_errors:
                    logger.info("command_interrupted", command=command.__name__)
                return ExitCode.INTERRUPTED
            except Exception as e:
                if log_errors:
                    logger.exception("command_crashed", command=command.__name__, error_type=type(e).__name__)
                if show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return ExitCode.UNKNOWN_ERROR

        return wrapper  # type: ignore[return-value]

    return decorator


def format_error_message(error: KoyebError) -> str:
    """Message plus any detail values the message does not already mention."""
    extra = [
        f"{key}={value}"
        for key, value in error.details.items()
        if value is not None and str(value) not in error.message
    ]
    return f"{error.message} ({', '.join(extra)})" if extra else error.message
