"""
Error taxonomy shared by the ledger, goal and report use cases.

The API layer maps each class to an HTTP status (see finledger.main).
"""
import functools
import logging

from sqlalchemy.exc import IntegrityError

logger = logging.getLogger(__name__)


class LedgerError(Exception):
    """Base class for errors raised on purpose by finledger use cases."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LedgerError):
    """Missing or malformed input, out-of-range values, storage constraint violations."""


class NotFoundError(LedgerError):
    """A referenced account, movement or goal does not exist."""


class ConflictError(LedgerError):
    """The operation breaks a state-machine rule or a uniqueness rule."""


class UnexpectedError(LedgerError):
    """Anything else. The message never carries internals."""


def _rollback(args) -> None:
    db = getattr(args[0], "db", None) if args else None
    if db is not None:
        db.rollback()


def translate_errors(operation: str):
    """
    Wrap a use-case method so only LedgerError subclasses escape it.

    - LedgerError: logged and re-raised unchanged
    - IntegrityError: rollback, re-raised as ValidationError
    - anything else: rollback, logged with traceback, re-raised as UnexpectedError

    The wrapped callable must be a method of an object holding the session
    in `self.db`.

    Usage:
        class ReverseMovementUseCase:
            @translate_errors("reverse movement")
            def execute(self, movement_id): ...
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except (ValidationError, NotFoundError, ConflictError) as exc:
                _rollback(args)
                logger.warning("%s failed in %s: %s", type(exc).__name__, operation, exc.message)
                raise
            except UnexpectedError:
                _rollback(args)
                raise
            except IntegrityError as exc:
                _rollback(args)
                logger.error("Integrity violation in %s: %s", operation, exc.orig)
                raise ValidationError(f"Invalid data for {operation}") from exc
            except Exception as exc:
                _rollback(args)
                logger.exception("Unexpected error in %s", operation)
                raise UnexpectedError(f"Internal error while trying to {operation}") from exc
        return wrapper
    return decorator


def validate_id(value, label: str = "ID") -> int:
    """Reject None, non-integers and non-positive ids"""
    if value is None or isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(f"Invalid {label}")
    return value


def require_text(value: str | None, field: str) -> str:
    """Trimmed non-blank text or ValidationError('<Field> is required')"""
    if value is None or not value.strip():
        raise ValidationError(f"{field[:1].upper()}{field[1:]} is required")
    return value.strip()


def optional_text(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None
