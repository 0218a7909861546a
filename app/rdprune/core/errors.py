"""Error hierarchy for rdprune.

Every error raised by the engine carries a category that decides how far
the run may have progressed before it aborts, and the exit code the CLI
reports for it.
"""

from enum import Enum


class ErrorCategory(str, Enum):
    """Classification of engine errors.

    Attributes:
        USAGE: Bad invocation (patterns, flags). Raised before any scan.
        PRECONDITION: Archive layout the engine refuses to touch.
        INTEGRITY: The confirmed plan changed before commit.
        RESOURCE: Not enough free space to retain backups, or the
            workspace and metadata volume cannot be used.
        INSTALL: Swapping a rewritten file into place failed.
        PARSE: A metadata stream is not well formed.
    """

    USAGE = "usage"
    PRECONDITION = "precondition"
    INTEGRITY = "integrity"
    RESOURCE = "resource"
    INSTALL = "install"
    PARSE = "parse"


class PruneError(Exception):
    """Base exception for all rdprune errors."""

    category: ErrorCategory = ErrorCategory.USAGE
    exit_code: int = 1


class UsageError(PruneError):
    """Raised for conflicting or missing command-line input."""


class MalformedPattern(UsageError):
    """Raised when a path pattern is not an absolute, normalized path."""

    def __init__(self, pattern: str, reason: str) -> None:
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"Invalid pattern {pattern!r}: {reason}")


class UnsupportedFormat(PruneError):
    """Raised when the archive uses storage the engine cannot rewrite."""

    category = ErrorCategory.PRECONDITION


class PlanTampered(PruneError):
    """Raised when the plan hash changed between confirmation and commit."""

    category = ErrorCategory.INTEGRITY
    exit_code = 3

    def __init__(self, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            "Deletion plan changed after confirmation "
            f"(expected {expected[:12]}, got {actual[:12]})"
        )


class InsufficientSpace(PruneError):
    """Raised when backup retention would not fit on the metadata volume."""

    category = ErrorCategory.RESOURCE
    exit_code = 4

    def __init__(self, required: int, available: int) -> None:
        self.required = required
        self.available = available
        super().__init__(
            f"Not enough free space for metadata backups: need {required} bytes, "
            f"{available} available"
        )


class WorkspaceError(PruneError):
    """Raised when the run cannot create or write its temporary files."""

    category = ErrorCategory.RESOURCE


class InstallError(PruneError):
    """Raised when a rewritten file could not be swapped into place."""

    category = ErrorCategory.INSTALL
    exit_code = 5


class MalformedStream(PruneError):
    """Raised when a record stream does not parse."""

    category = ErrorCategory.PARSE
    exit_code = 6

    def __init__(self, message: str, line_number: int | None = None) -> None:
        self.line_number = line_number
        if line_number is not None:
            message = f"{message} (line {line_number})"
        super().__init__(message)
