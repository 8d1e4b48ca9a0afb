"""
ORM entity definitions
Reservation, room inventory, room assignment and ledger tables.
Identity columns are UUID strings; money columns are Numeric (Decimal in Python).
"""
from datetime import datetime
from typing import Optional
from uuid import uuid4
from sqlalchemy import (
    Column, Integer, String, Float, DateTime, Date,
    ForeignKey, Text, Enum as SQLEnum, Boolean, Numeric
)
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import relationship

from hms.database import Base
from hms.domain.state_machine import RESERVATION_STATUS_MACHINE, CHECKIN_STATUS_MACHINE
from hms.models.enums import (
    UserRole, ReservationStatus, CheckinStatus, RoomStatus, PaymentMethod,
    PaymentStatus, ServiceType, BillingType, BillingStatus, ResidentialDuration
)


def _uuid() -> str:
    return str(uuid4())


# ============== Reference data ==============

class LoyaltyProgram(Base):
    """Loyalty tier with a percentage discount on new reservations"""
    __tablename__ = "loyalty_programs"

    id = Column(String(36), primary_key=True, default=_uuid)
    tier_name = Column(String(50), unique=True, nullable=False)
    min_points = Column(Integer, default=0)
    discount_percentage = Column(Numeric(5, 2), default=0)
    benefits = Column(Text)
    created_at = Column(DateTime, default=datetime.now)

    members = relationship("User", back_populates="loyalty_program")


class TravelCompany(Base):
    """
    Travel company billed on account
    current_balance may never exceed credit_limit
    """
    __tablename__ = "travel_companies"

    id = Column(String(36), primary_key=True, default=_uuid)
    company_name = Column(String(100), nullable=False)
    contact_person = Column(String(100))
    email = Column(String(100), nullable=False)
    phone = Column(String(20))
    address = Column(Text)
    discount_rate = Column(Numeric(5, 2), default=0)      # percentage
    credit_limit = Column(Numeric(12, 2), default=0)
    current_balance = Column(Numeric(12, 2), default=0)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    members = relationship("User", back_populates="travel_company")


class User(Base):
    """
    Guest identity / acting principal
    Walk-in guests have no password_hash
    """
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(100), nullable=False)
    email = Column(String(100), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=True)
    role = Column(SQLEnum(UserRole), nullable=False, default=UserRole.CUSTOMER)
    phone = Column(String(20))
    address = Column(Text)
    loyalty_points = Column(Integer, default=0)
    loyalty_program_id = Column(String(36), ForeignKey("loyalty_programs.id"), nullable=True)
    travel_company_id = Column(String(36), ForeignKey("travel_companies.id"), nullable=True)
    is_walk_in = Column(Boolean, default=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    loyalty_program = relationship("LoyaltyProgram", back_populates="members")
    travel_company = relationship("TravelCompany", back_populates="members")
    reservations = relationship("Reservation", back_populates="guest")


class RoomType(Base):
    """Room type - read-mostly pricing and capacity data"""
    __tablename__ = "room_types"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(50), unique=True, nullable=False)
    description = Column(Text)
    base_price = Column(Numeric(12, 2), nullable=False)     # nightly
    capacity = Column(Integer, default=2)
    amenities = Column(Text)
    is_residential = Column(Boolean, default=False)
    weekly_rate = Column(Numeric(12, 2), nullable=True)
    monthly_rate = Column(Numeric(12, 2), nullable=True)
    created_at = Column(DateTime, default=datetime.now)

    rooms = relationship("Room", back_populates="room_type")


class Room(Base):
    """Physical room"""
    __tablename__ = "rooms"

    id = Column(String(36), primary_key=True, default=_uuid)
    room_number = Column(String(10), unique=True, nullable=False)
    room_type_id = Column(String(36), ForeignKey("room_types.id"), nullable=False)
    status = Column(SQLEnum(RoomStatus), nullable=False, default=RoomStatus.AVAILABLE)
    floor = Column(Integer)
    is_residential = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    room_type = relationship("RoomType", back_populates="rooms")
    assignment = relationship("RoomAssignment", back_populates="room", uselist=False)


# ============== Reservation aggregate ==============

class Reservation(Base):
    """
    Reservation aggregate root

    ``status`` (approval) and ``checkin_status`` (presence) are independent
    axes. Both are read-only attributes backed by private columns; they only
    change through ``transition_status`` / ``transition_checkin_status``.
    """
    __tablename__ = "reservations"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    room_type_id = Column(String(36), ForeignKey("room_types.id"), nullable=False)
    check_in_date = Column(Date, nullable=False)
    check_out_date = Column(Date, nullable=False)
    num_guests = Column(Integer, default=1)
    _status = Column("status", SQLEnum(ReservationStatus), nullable=False,
                     default=ReservationStatus.PENDING)
    _checkin_status = Column("checkin_status", SQLEnum(CheckinStatus), nullable=False,
                             default=CheckinStatus.NOT_CHECKED_IN)
    total_price = Column(Numeric(12, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(12, 2), nullable=False, default=0)
    final_price = Column(Numeric(12, 2), nullable=False, default=0)
    special_requests = Column(Text)
    has_credit_card = Column(Boolean, default=False)
    credit_card_last4 = Column(String(4))
    is_walk_in = Column(Boolean, default=False)
    is_travel_company = Column(Boolean, default=False)
    travel_company_id = Column(String(36), ForeignKey("travel_companies.id"), nullable=True)
    is_residential = Column(Boolean, default=False)
    residential_duration = Column(SQLEnum(ResidentialDuration), nullable=True)
    checked_in_at = Column(DateTime)
    checked_out_at = Column(DateTime)
    cancelled_at = Column(DateTime)
    no_show_at = Column(DateTime)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    guest = relationship("User", back_populates="reservations")
    room_type = relationship("RoomType")
    travel_company = relationship("TravelCompany")
    assignment = relationship("RoomAssignment", back_populates="reservation", uselist=False)
    payments = relationship("Payment", back_populates="reservation")
    service_charges = relationship("ServiceCharge", back_populates="reservation")
    billing_records = relationship("BillingRecord", back_populates="reservation")

    def __init__(self, status: ReservationStatus = ReservationStatus.PENDING,
                 checkin_status: CheckinStatus = CheckinStatus.NOT_CHECKED_IN, **kwargs):
        super().__init__(**kwargs)
        self._status = ReservationStatus(status)
        self._checkin_status = CheckinStatus(checkin_status)

    @hybrid_property
    def status(self) -> ReservationStatus:
        return self._status

    @hybrid_property
    def checkin_status(self) -> CheckinStatus:
        return self._checkin_status

    def transition_status(self, target: ReservationStatus,
                          at: Optional[datetime] = None) -> bool:
        """
        Move the approval axis to ``target``.
        Returns False when the move is a no-op (re-confirming).
        Raises InvalidTransitionError for illegal moves.
        """
        target = ReservationStatus(target)
        RESERVATION_STATUS_MACHINE.validate(self._status, target)
        if RESERVATION_STATUS_MACHINE.is_noop(self._status, target):
            return False

        at = at or datetime.now()
        self._status = target
        if target == ReservationStatus.CANCELLED:
            self.cancelled_at = at
        elif target == ReservationStatus.NO_SHOW:
            self.no_show_at = at
        self.updated_at = at
        return True

    def transition_checkin_status(self, target: CheckinStatus,
                                  at: Optional[datetime] = None) -> bool:
        """Move the presence axis to ``target``. Raises InvalidTransitionError for illegal moves."""
        target = CheckinStatus(target)
        CHECKIN_STATUS_MACHINE.validate(self._checkin_status, target)

        at = at or datetime.now()
        self._checkin_status = target
        if target == CheckinStatus.CHECKED_IN:
            self.checked_in_at = at
        elif target == CheckinStatus.CHECKED_OUT:
            self.checked_out_at = at
        self.updated_at = at
        return True

    @property
    def nights(self) -> int:
        return (self.check_out_date - self.check_in_date).days


class RoomAssignment(Base):
    """
    Binds one reservation to one room
    Unique on both sides; hard-deleted at check-out so the room can be reassigned
    """
    __tablename__ = "room_assignments"

    id = Column(String(36), primary_key=True, default=_uuid)
    reservation_id = Column(String(36), ForeignKey("reservations.id"), unique=True, nullable=False)
    room_id = Column(String(36), ForeignKey("rooms.id"), unique=True, nullable=False)
    assigned_at = Column(DateTime, default=datetime.now)
    assigned_by = Column(String(36), ForeignKey("users.id"), nullable=True)

    reservation = relationship("Reservation", back_populates="assignment")
    room = relationship("Room", back_populates="assignment")


# ============== Ledger ==============

class Payment(Base):
    """
    Payment record
    Signed amount: a refund is a separate negative row with status refunded
    """
    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=_uuid)
    reservation_id = Column(String(36), ForeignKey("reservations.id"), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    payment_date = Column(DateTime, default=datetime.now)
    payment_method = Column(SQLEnum(PaymentMethod), nullable=False)
    transaction_id = Column(String(100))
    status = Column(SQLEnum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING)
    processed_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    notes = Column(Text)

    reservation = relationship("Reservation", back_populates="payments")
    processor = relationship("User")


class ServiceCharge(Base):
    """Ad-hoc charge against a checked-in reservation"""
    __tablename__ = "service_charges"

    id = Column(String(36), primary_key=True, default=_uuid)
    reservation_id = Column(String(36), ForeignKey("reservations.id"), nullable=False)
    service_type = Column(SQLEnum(ServiceType), nullable=False, default=ServiceType.OTHER)
    description = Column(Text, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    charged_at = Column(DateTime, default=datetime.now)
    charged_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    is_paid = Column(Boolean, default=False)

    reservation = relationship("Reservation", back_populates="service_charges")


class BillingRecord(Base):
    """Hotel-initiated charge (no-show fee etc.), kept apart from payments"""
    __tablename__ = "billing_records"

    id = Column(String(36), primary_key=True, default=_uuid)
    reservation_id = Column(String(36), ForeignKey("reservations.id"), nullable=False)
    billing_type = Column(SQLEnum(BillingType), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    description = Column(Text)
    billed_at = Column(DateTime, default=datetime.now)
    billed_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    status = Column(SQLEnum(BillingStatus), nullable=False, default=BillingStatus.PENDING)

    reservation = relationship("Reservation", back_populates="billing_records")


class DailyReport(Base):
    """Immutable occupancy / revenue snapshot, one per calendar date"""
    __tablename__ = "daily_reports"

    id = Column(String(36), primary_key=True, default=_uuid)
    report_date = Column(Date, unique=True, nullable=False)
    total_occupancy = Column(Integer, default=0)
    total_rooms = Column(Integer, default=0)
    occupancy_rate = Column(Float, default=0.0)
    total_revenue = Column(Numeric(12, 2), default=0)
    total_reservations = Column(Integer, default=0)
    total_check_ins = Column(Integer, default=0)
    total_check_outs = Column(Integer, default=0)
    total_cancellations = Column(Integer, default=0)
    total_no_shows = Column(Integer, default=0)
    generated_at = Column(DateTime, default=datetime.now)
    generated_by = Column(String(36), ForeignKey("users.id"), nullable=True)
