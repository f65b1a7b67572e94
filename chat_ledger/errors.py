"""
Error taxonomy for the ledger core.

Every failure leaves a service as one of these types:

  ValidationError  malformed input; report to the sender, never retry
  NotFoundError    unknown code, transaction, category or account
  ExpiredError     connection code past its expiry
  ConflictError    duplicate keyword, identity already linked, in-use rows
  StorageError     transient persistence failure; the only retryable kind

Each error carries an HTTP status so the API layer can map it
without knowing the concrete type.
"""

import functools

from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError


class AppError(Exception):
    """Base application error."""

    retryable: bool = False

    def __init__(
        self,
        code: str,
        message: str,
        http_status: int = 400,
        hint: str | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        self.hint = hint
        super().__init__(message)


class ValidationError(AppError):
    def __init__(self, message: str, hint: str | None = None) -> None:
        super().__init__("validation_error", message, 422, hint)


class NotFoundError(AppError):
    def __init__(self, message: str, hint: str | None = None) -> None:
        super().__init__("not_found", message, 404, hint)


class ExpiredError(AppError):
    def __init__(self, message: str, hint: str | None = None) -> None:
        super().__init__("expired", message, 410, hint)


class ConflictError(AppError):
    def __init__(self, message: str, hint: str | None = None) -> None:
        super().__init__("conflict", message, 409, hint)


class StorageError(AppError):
    retryable = True

    def __init__(self, message: str = "Storage is temporarily unavailable") -> None:
        super().__init__("storage_error", message, 503)


def surfaces_storage_errors(func):
    """
    Re-raise transient SQLAlchemy failures as StorageError.

    Integrity violations are not transient and pass through
    unchanged; services translate those into domain errors.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (OperationalError, InterfaceError, PoolTimeoutError) as e:
            raise StorageError(f"Storage failure in {func.__name__}: {e}") from e
    return wrapper
