# backend/services/errors.py
"""Domain errors raised by the services and mapped to HTTP responses in main.py."""
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError, TimeoutError as SATimeoutError
from sqlalchemy.orm import Session


class ShopError(Exception):
    status_code = 400
    retryable = False
    default_detail = "Request failed"

    def __init__(self, detail: str = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


# No session or an invalid one: clients redirect to the login page
class AuthRequired(ShopError):
    status_code = 401
    default_detail = "Authentication required"


# Authenticated, but the role does not allow the operation
class Forbidden(ShopError):
    status_code = 403
    default_detail = "Forbidden"


class NotFound(ShopError):
    status_code = 404
    default_detail = "Not found"


class Conflict(ShopError):
    status_code = 409
    default_detail = "Already exists"


class InvalidTransition(ShopError):
    status_code = 409
    default_detail = "Status change not allowed"


class ValidationFailed(ShopError):
    status_code = 422
    default_detail = "Validation failed"


class EmptyCart(ShopError):
    status_code = 400
    default_detail = "Nothing to order: the cart is empty"


# Database unreachable or timed out; the same request may succeed later
class StoreUnavailable(ShopError):
    status_code = 503
    retryable = True
    default_detail = "Store temporarily unavailable, please retry"


@contextmanager
def store_errors(db: Session = None):
    """Translate driver-level failures into StoreUnavailable, rolling back ``db``."""
    try:
        yield
    except (OperationalError, InterfaceError, SATimeoutError) as exc:
        if db is not None:
            db.rollback()
        raise StoreUnavailable() from exc


@contextmanager
def unique_or_conflict(db: Session, detail: str):
    """A unique index rejecting the write (a concurrent duplicate) becomes Conflict."""
    try:
        yield
    except IntegrityError as exc:
        db.rollback()
        raise Conflict(detail) from exc
