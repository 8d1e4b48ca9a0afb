"""
Pydantic schemas
Request payloads accepted by the services and response shapes returned by the API
"""
from datetime import datetime, date
from decimal import Decimal
from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict

from hms.models.enums import (
    ReservationStatus, CheckinStatus, RoomStatus, PaymentMethod, PaymentStatus,
    ServiceType, BillingType, BillingStatus, ResidentialDuration
)


# ============== Reservation Schemas ==============

class ReservationCreate(BaseModel):
    room_type_id: str
    check_in_date: date
    check_out_date: date
    num_guests: int = Field(default=1, ge=1)
    special_requests: Optional[str] = None
    has_credit_card: bool = False
    credit_card_last4: Optional[str] = Field(None, pattern=r"^\d{4}$")
    is_residential: bool = False
    residential_duration: Optional[ResidentialDuration] = None


class ReservationUpdate(BaseModel):
    """
    Partial update; only fields that were explicitly set are considered.
    ``status`` and ``checkin_status`` are accepted here only so that a request
    carrying them can be rejected with a precise error code.
    """
    check_out_date: Optional[date] = None
    num_guests: Optional[int] = Field(None, ge=1)
    special_requests: Optional[str] = None
    has_credit_card: Optional[bool] = None
    credit_card_last4: Optional[str] = Field(None, pattern=r"^\d{4}$")
    status: Optional[ReservationStatus] = None
    checkin_status: Optional[CheckinStatus] = None


class ReservationFilter(BaseModel):
    status: Optional[ReservationStatus] = None
    checkin_status: Optional[CheckinStatus] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    room_type_id: Optional[str] = None


class BulkBookingCreate(BaseModel):
    room_type_id: str
    check_in_date: date
    check_out_date: date
    number_of_rooms: int = Field(..., ge=1)
    total_guests: int = Field(..., ge=1)
    special_requests: Optional[str] = None


class ReservationDetail(BaseModel):
    """Reservation row joined with guest / room / ledger totals"""
    id: str
    user_id: str
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    room_type_id: str
    room_type_name: Optional[str] = None
    room_number: Optional[str] = None
    check_in_date: date
    check_out_date: date
    num_guests: int
    status: ReservationStatus
    checkin_status: CheckinStatus
    total_price: Decimal
    discount_amount: Decimal
    final_price: Decimal
    special_requests: Optional[str] = None
    has_credit_card: bool = False
    is_walk_in: bool = False
    is_travel_company: bool = False
    is_residential: bool = False
    residential_duration: Optional[ResidentialDuration] = None
    total_paid: Decimal = Decimal("0")
    service_charges_total: Decimal = Decimal("0")
    outstanding_balance: Decimal = Decimal("0")
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


# ============== Front desk Schemas ==============

class WalkInGuest(BaseModel):
    name: str = Field(..., max_length=100)
    email: str = Field(..., max_length=100)
    phone: Optional[str] = None
    address: Optional[str] = None


class ServiceChargeCreate(BaseModel):
    service_type: ServiceType = ServiceType.OTHER
    description: str
    amount: Decimal = Field(..., ge=0)


class CheckInRequest(BaseModel):
    room_id: str


class CheckOutRequest(BaseModel):
    payment_method: PaymentMethod
    amount: Decimal = Field(default=Decimal("0"), ge=0)
    service_charges: List[ServiceChargeCreate] = []


class WalkInCreate(BaseModel):
    guest: WalkInGuest
    reservation: ReservationCreate


class ServiceChargeResponse(BaseModel):
    id: str
    reservation_id: str
    service_type: ServiceType
    description: str
    amount: Decimal
    charged_at: datetime
    charged_by: Optional[str] = None
    is_paid: bool
    model_config = ConfigDict(from_attributes=True)


# ============== Payment Schemas ==============

class PaymentCreate(BaseModel):
    reservation_id: str
    amount: Decimal
    payment_method: PaymentMethod
    transaction_id: Optional[str] = None
    notes: Optional[str] = None


class RefundRequest(BaseModel):
    amount: Decimal
    reason: str


class PaymentResponse(BaseModel):
    id: str
    reservation_id: str
    amount: Decimal
    payment_date: datetime
    payment_method: PaymentMethod
    transaction_id: Optional[str] = None
    status: PaymentStatus
    processed_by: Optional[str] = None
    notes: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class BillingRecordResponse(BaseModel):
    id: str
    reservation_id: str
    billing_type: BillingType
    amount: Decimal
    description: Optional[str] = None
    billed_at: datetime
    status: BillingStatus
    model_config = ConfigDict(from_attributes=True)


# ============== Room Schemas ==============

class RoomCreate(BaseModel):
    room_number: str = Field(..., max_length=10)
    room_type_id: str
    floor: Optional[int] = None
    is_residential: bool = False


class RoomUpdate(BaseModel):
    room_number: Optional[str] = Field(None, max_length=10)
    room_type_id: Optional[str] = None
    floor: Optional[int] = None
    is_residential: Optional[bool] = None


class RoomResponse(BaseModel):
    id: str
    room_number: str
    room_type_id: str
    status: RoomStatus
    floor: Optional[int] = None
    is_residential: bool = False
    model_config = ConfigDict(from_attributes=True)


# ============== Report Schemas ==============

class DailyReportResponse(BaseModel):
    id: str
    report_date: date
    total_occupancy: int
    total_rooms: int
    occupancy_rate: float
    total_revenue: Decimal
    total_reservations: int
    total_check_ins: int
    total_check_outs: int
    total_cancellations: int
    total_no_shows: int
    generated_at: datetime
    model_config = ConfigDict(from_attributes=True)
