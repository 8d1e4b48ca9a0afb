"""
Domain events
Published on the in-process event bus after a unit of work commits
"""
from enum import Enum
from dataclasses import dataclass, field, asdict
from datetime import datetime, date
from decimal import Decimal
from typing import Optional, Dict, Any, List


class EventType(str, Enum):
    """Event type"""
    # Reservation
    RESERVATION_CREATED = "reservation.created"
    RESERVATION_CONFIRMED = "reservation.confirmed"
    RESERVATION_CANCELLED = "reservation.cancelled"
    RESERVATION_NO_SHOW_BILLED = "reservation.no_show_billed"

    # Front desk
    GUEST_CHECKED_IN = "guest.checked_in"
    GUEST_CHECKED_OUT = "guest.checked_out"

    # Ledger
    PAYMENT_RECEIVED = "payment.received"
    PAYMENT_REFUNDED = "payment.refunded"
    SERVICE_CHARGE_ADDED = "service_charge.added"

    # Reports
    DAILY_REPORT_GENERATED = "report.daily_generated"


@dataclass
class BaseEventData:
    """Event payload base"""
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        for key, value in result.items():
            if isinstance(value, (datetime, date)):
                result[key] = value.isoformat()
            elif isinstance(value, Decimal):
                result[key] = str(value)
        return result


@dataclass
class ReservationCreatedData(BaseEventData):
    reservation_id: str = ""
    guest_id: str = ""
    room_type_id: str = ""
    check_in_date: str = ""
    check_out_date: str = ""
    status: str = ""
    final_price: Decimal = Decimal("0")
    is_walk_in: bool = False


@dataclass
class ReservationStatusChangedData(BaseEventData):
    reservation_id: str = ""
    old_status: str = ""
    new_status: str = ""
    reason: str = ""


@dataclass
class GuestCheckedInData(BaseEventData):
    reservation_id: str = ""
    guest_id: str = ""
    room_id: str = ""
    room_number: str = ""
    operator_id: Optional[str] = None
    is_walk_in: bool = False


@dataclass
class GuestCheckedOutData(BaseEventData):
    reservation_id: str = ""
    guest_id: str = ""
    room_id: Optional[str] = None
    room_number: Optional[str] = None
    payment_id: str = ""
    amount_paid: Decimal = Decimal("0")
    service_charge_ids: List[str] = field(default_factory=list)
    operator_id: Optional[str] = None


@dataclass
class PaymentData(BaseEventData):
    payment_id: str = ""
    reservation_id: str = ""
    amount: Decimal = Decimal("0")
    payment_method: str = ""
    operator_id: Optional[str] = None


@dataclass
class ServiceChargeAddedData(BaseEventData):
    service_charge_id: str = ""
    reservation_id: str = ""
    service_type: str = ""
    amount: Decimal = Decimal("0")
    operator_id: Optional[str] = None


@dataclass
class NoShowBilledData(BaseEventData):
    reservation_id: str = ""
    billing_record_id: str = ""
    fee: Decimal = Decimal("0")


@dataclass
class DailyReportGeneratedData(BaseEventData):
    report_id: str = ""
    report_date: str = ""
    occupancy_rate: float = 0.0
    total_revenue: Decimal = Decimal("0")
