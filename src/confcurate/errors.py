"""Error kinds shared by the back end, the gateway wire format, and the client.

Every failure that crosses the gateway carries one ErrorKind so callers can
branch on the kind instead of matching message text.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    """Error kinds."""

    NOT_CONFIGURED = "not_configured"
    NOT_FOUND = "not_found"
    CORRUPT = "corrupt"
    PRECONDITION = "precondition"
    EXTERNAL = "external"
    VALIDATION = "validation"


class CurateError(Exception):
    """Base error with a kind and a user-facing message."""

    kind: ErrorKind = ErrorKind.EXTERNAL

    def __init__(self, message: str, *, kind: ErrorKind | None = None) -> None:
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind.value, "message": self.message}


class NotConfiguredError(CurateError):
    """Raised when the website repository path has not been set."""

    kind = ErrorKind.NOT_CONFIGURED

    def __init__(self, message: str = "Website repository not configured") -> None:
        super().__init__(message)


class RecordNotFoundError(CurateError):
    kind = ErrorKind.NOT_FOUND


class CorruptCollectionError(CurateError):
    """Raised when a collection file is not valid JSON of the expected shape."""

    kind = ErrorKind.CORRUPT

    def __init__(self, path: object, reason: str) -> None:
        super().__init__(f"Corrupt collection file {path}: {reason}")
        self.path = path


class CorruptConfigError(CorruptCollectionError):
    """Raised when config.json cannot be parsed; the file is left as found."""

    def __init__(self, path: object, reason: str) -> None:
        CurateError.__init__(self, f"Unreadable config file {path}: {reason}")
        self.path = path


class PreconditionError(CurateError):
    kind = ErrorKind.PRECONDITION


class UncommittedChangesError(PreconditionError):
    def __init__(self) -> None:
        super().__init__(
            "Cannot switch branches with uncommitted changes. Please save your changes first."
        )


class BranchExistsError(PreconditionError):
    def __init__(self, name: str) -> None:
        super().__init__(f"A branch named '{name}' already exists")
        self.branch = name


class ExternalError(CurateError):
    kind = ErrorKind.EXTERNAL


class GitCommandError(ExternalError):
    """A git subprocess exited non-zero."""

    def __init__(self, args: list[str], returncode: int, output: str) -> None:
        detail = output.strip() or f"git exited with status {returncode}"
        super().__init__(detail)
        self.command = args
        self.returncode = returncode


class ValidationError(CurateError):
    kind = ErrorKind.VALIDATION


_BY_KIND: dict[ErrorKind, type[CurateError]] = {
    ErrorKind.NOT_CONFIGURED: NotConfiguredError,
    ErrorKind.NOT_FOUND: RecordNotFoundError,
    ErrorKind.CORRUPT: CorruptCollectionError,
    ErrorKind.PRECONDITION: PreconditionError,
    ErrorKind.EXTERNAL: ExternalError,
    ErrorKind.VALIDATION: ValidationError,
}


def error_from_kind(kind: str, message: str) -> CurateError:
    """Rebuild a typed error from its wire form. Unknown kinds become ExternalError."""
    try:
        error_kind = ErrorKind(kind)
    except ValueError:
        error_kind = ErrorKind.EXTERNAL
    cls = _BY_KIND[error_kind]
    # Subclasses with bespoke constructors are rebuilt through the base class.
    exc = CurateError.__new__(cls)
    CurateError.__init__(exc, message, kind=error_kind)
    return exc
