import functools
import logging
import time
from typing import Dict, Any, Optional, Callable, TypeVar
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from datetime import date

from django.db import transaction, OperationalError
from django.db.models import Model

logger = logging.getLogger(__name__)

T = TypeVar("T")

QUANTITY_DIGITS = 15
QUANTITY_PLACES = 4
QUANTIZE_EXP = Decimal(1).scaleb(-QUANTITY_PLACES)
# Smallest value that no longer fits DecimalField(max_digits=15, decimal_places=4)
QUANTITY_LIMIT = Decimal(10) ** (QUANTITY_DIGITS - QUANTITY_PLACES)
ZERO = Decimal("0")


class ServiceError(Exception):
    def __init__(self, message: str, code: str = "ERROR", details: Dict = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)


class ValidationError(ServiceError):
    def __init__(self, message: str, field: str = None, details: Dict = None):
        super().__init__(message, "VALIDATION_ERROR", details)
        self.field = field


class NotFoundError(ValidationError):
    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            f"{resource} not found: {identifier}",
            details={"resource": resource, "identifier": str(identifier)}
        )
        self.code = "NOT_FOUND"


class InsufficientStockError(ServiceError):
    """Pooled active stock of an ingredient cannot cover the request."""

    def __init__(self, item_name: str, required: Decimal, available: Decimal):
        self.required = required
        self.available = available
        self.shortage = required - available
        super().__init__(
            f"Insufficient stock for {item_name}: required {required}, available {available}",
            "INSUFFICIENT_STOCK",
            {
                "item": item_name,
                "required": str(required),
                "available": str(available),
                "shortage": str(self.shortage),
            }
        )


class InsufficientQuantityError(ServiceError):
    """A specific batch does not hold the requested quantity."""

    def __init__(self, batch_number: str, required: Decimal, available: Decimal):
        self.required = required
        self.available = available
        self.shortage = required - available
        super().__init__(
            f"Insufficient quantity in batch {batch_number}: required {required}, available {available}",
            "INSUFFICIENT_QUANTITY",
            {
                "batch": batch_number,
                "required": str(required),
                "available": str(available),
            }
        )


class ConcurrencyConflictError(ServiceError):
    """The store aborted the transaction due to contention. Nothing was committed."""

    def __init__(self, message: str = "Inventory is busy, retry the operation"):
        super().__init__(message, "CONCURRENCY_CONFLICT")


def round_decimal(value: Decimal, places: int = QUANTITY_PLACES) -> Decimal:
    if value is None:
        return ZERO
    quantize_str = "0." + "0" * places
    return value.quantize(Decimal(quantize_str), rounding=ROUND_HALF_UP)


def to_quantity(value: Any, field: str = "quantity") -> Decimal:
    """Parse a quantity or money value into a 4-place Decimal, rejecting junk."""
    if isinstance(value, float):
        value = repr(value)
    try:
        result = Decimal(str(value))
        if not result.is_finite():
            raise ValidationError(f"Invalid {field}: {value!r}", field)
        result = result.quantize(QUANTIZE_EXP, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"Invalid {field}: {value!r}", field)
    if abs(result) >= QUANTITY_LIMIT:
        raise ValidationError(
            f"{field} is too large: at most {QUANTITY_DIGITS - QUANTITY_PLACES} digits before the decimal point",
            field
        )
    return result


def to_date(value: Any, field: str) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise ValidationError(f"Invalid {field}: {value!r}, expected YYYY-MM-DD", field)


def atomic_operation(func: Callable[..., T]) -> Callable[..., T]:
    """
    Run a mutating service call in one transaction.

    Lock timeouts and "database is locked" errors from the store surface as
    ConcurrencyConflictError; the transaction has been rolled back.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            with transaction.atomic():
                return func(*args, **kwargs)
        except OperationalError as e:
            logger.warning("Inventory transaction aborted in %s: %s", func.__qualname__, e)
            raise ConcurrencyConflictError(str(e)) from e
    return wrapper


def retry_on_conflict(func: Callable[[], T], attempts: int = 3, delay: float = 0.05) -> T:
    """
    Call func, retrying when it raises ConcurrencyConflictError.

    Safe because a conflicting operation never commits anything.
    """
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except ConcurrencyConflictError:
            if attempt == attempts:
                raise
            logger.info("Retrying after concurrency conflict (attempt %s/%s)", attempt, attempts)
            time.sleep(delay * attempt)


class BaseService:
    model = None

    @classmethod
    def get_by_id(cls, id: int) -> Optional[Model]:
        try:
            return cls.model.objects.get(id=id)
        except (cls.model.DoesNotExist, ValueError, TypeError):
            return None

    @classmethod
    def exists(cls, id: int) -> bool:
        return cls.model.objects.filter(id=id).exists()
