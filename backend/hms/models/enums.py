"""
Closed enumerations for every status / method / type field.
Unknown values are rejected at the service boundary by the pydantic schemas.
"""
from enum import Enum


class UserRole(str, Enum):
    """Principal role"""
    CUSTOMER = "customer"
    CLERK = "clerk"
    MANAGER = "manager"
    TRAVEL = "travel"


class ReservationStatus(str, Enum):
    """Reservation approval status"""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"


class CheckinStatus(str, Enum):
    """Physical presence of the guest"""
    NOT_CHECKED_IN = "not_checked_in"
    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"


class RoomStatus(str, Enum):
    """Room status"""
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    MAINTENANCE = "maintenance"
    CLEANING = "cleaning"
    RESERVED = "reserved"


class PaymentMethod(str, Enum):
    """Payment method"""
    CASH = "cash"
    CREDIT_CARD = "credit_card"
    BANK_TRANSFER = "bank_transfer"
    TRAVEL_COMPANY = "travel_company"


class PaymentStatus(str, Enum):
    """Payment status"""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class ServiceType(str, Enum):
    """Service charge category"""
    RESTAURANT = "restaurant"
    ROOM_SERVICE = "room_service"
    LAUNDRY = "laundry"
    TELEPHONE = "telephone"
    CLUB_ACCESS = "club_access"
    KEY_ISSUING = "key_issuing"
    OTHER = "other"


class BillingType(str, Enum):
    """Hotel-initiated charge category"""
    NO_SHOW = "no_show"
    LATE_CANCELLATION = "late_cancellation"
    DAMAGE = "damage"
    OTHER = "other"


class BillingStatus(str, Enum):
    """Billing record status"""
    PENDING = "pending"
    PAID = "paid"
    DISPUTED = "disputed"


class ResidentialDuration(str, Enum):
    """Residential flat-rate duration"""
    WEEKLY = "weekly"
    MONTHLY = "monthly"
