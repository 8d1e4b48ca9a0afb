"""
hms/services/result.py

Tagged result returned by every service operation.
Expected business-rule violations come back as ``ServiceResult.fail`` with a
stable ``ErrorCode``; callers map codes to HTTP statuses / user text.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorCode(str, Enum):
    """Stable error identifiers"""
    # Reservation lifecycle
    INVALID_CHECKIN_DATE = "INVALID_CHECKIN_DATE"
    INVALID_CHECKOUT_DATE = "INVALID_CHECKOUT_DATE"
    ROOM_TYPE_NOT_FOUND = "ROOM_TYPE_NOT_FOUND"
    GUEST_NOT_FOUND = "GUEST_NOT_FOUND"
    GUEST_COUNT_EXCEEDS_CAPACITY = "GUEST_COUNT_EXCEEDS_CAPACITY"
    NO_ROOMS_AVAILABLE = "NO_ROOMS_AVAILABLE"
    INSUFFICIENT_ROOMS = "INSUFFICIENT_ROOMS"
    RESERVATION_NOT_FOUND = "RESERVATION_NOT_FOUND"
    INVALID_STATUS_FOR_UPDATE = "INVALID_STATUS_FOR_UPDATE"
    INVALID_STATUS_CHECKIN_COMBINATION = "INVALID_STATUS_CHECKIN_COMBINATION"
    STATUS_NOT_UPDATABLE = "STATUS_NOT_UPDATABLE"
    CHECKIN_STATUS_NOT_UPDATABLE = "CHECKIN_STATUS_NOT_UPDATABLE"
    NO_UPDATES = "NO_UPDATES"
    ALREADY_CANCELLED = "ALREADY_CANCELLED"
    CANNOT_CANCEL_CHECKED_IN = "CANNOT_CANCEL_CHECKED_IN"
    INVALID_STATUS_FOR_CANCEL = "INVALID_STATUS_FOR_CANCEL"

    # Front desk / room assignment
    ALREADY_CHECKED_IN = "ALREADY_CHECKED_IN"
    RESERVATION_NOT_CONFIRMED = "RESERVATION_NOT_CONFIRMED"
    ROOM_NOT_FOUND = "ROOM_NOT_FOUND"
    ROOM_NOT_AVAILABLE = "ROOM_NOT_AVAILABLE"
    ROOM_TYPE_MISMATCH = "ROOM_TYPE_MISMATCH"
    ROOM_ALREADY_ASSIGNED = "ROOM_ALREADY_ASSIGNED"
    INVALID_STATUS_FOR_CHECKOUT = "INVALID_STATUS_FOR_CHECKOUT"
    INVALID_STATUS_FOR_CHARGES = "INVALID_STATUS_FOR_CHARGES"

    # Room management
    ROOM_OCCUPIED = "ROOM_OCCUPIED"
    ROOM_NUMBER_EXISTS = "ROOM_NUMBER_EXISTS"
    INVALID_ROOM_STATUS = "INVALID_ROOM_STATUS"

    # Ledger
    INVALID_STATUS_FOR_PAYMENT = "INVALID_STATUS_FOR_PAYMENT"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    INVALID_PAYMENT_METHOD = "INVALID_PAYMENT_METHOD"
    TRAVEL_COMPANY_NOT_FOUND = "TRAVEL_COMPANY_NOT_FOUND"
    CREDIT_LIMIT_EXCEEDED = "CREDIT_LIMIT_EXCEEDED"
    PAYMENT_NOT_FOUND = "PAYMENT_NOT_FOUND"
    INVALID_PAYMENT_STATUS = "INVALID_PAYMENT_STATUS"
    INVALID_REFUND_AMOUNT = "INVALID_REFUND_AMOUNT"

    # Reconciliation
    REPORT_ALREADY_EXISTS = "REPORT_ALREADY_EXISTS"

    INTERNAL_ERROR = "INTERNAL_ERROR"


@dataclass(frozen=True)
class ServiceError:
    """Failure payload: developer-facing message plus stable code"""
    message: str
    code: ErrorCode


@dataclass
class ServiceResult(Generic[T]):
    """
    Operation outcome

    Exactly one of ``data`` (on success) or ``error`` (on failure) is meaningful.
    """
    success: bool
    data: Optional[T] = None
    error: Optional[ServiceError] = None

    @staticmethod
    def ok(data: Any = None) -> "ServiceResult":
        return ServiceResult(success=True, data=data)

    @staticmethod
    def fail(code: ErrorCode, message: str) -> "ServiceResult":
        return ServiceResult(success=False, error=ServiceError(message=message, code=code))

    @property
    def code(self) -> Optional[ErrorCode]:
        return self.error.code if self.error else None
