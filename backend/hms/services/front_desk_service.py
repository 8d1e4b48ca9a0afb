"""
Front desk service
Check-in, check-out, walk-ins and in-stay service charges.
Each operation is one unit of work spanning the reservation, room and ledger
services it drives; any failure along the way leaves nothing behind.
"""
from typing import List, Optional
import logging

from sqlalchemy.orm import Session

from hms.models.entities import Reservation, User
from hms.models.enums import CheckinStatus, ReservationStatus, PaymentMethod, UserRole
from hms.models.events import EventType, GuestCheckedInData, GuestCheckedOutData
from hms.models.schemas import (
    ReservationCreate, ReservationDetail, ServiceChargeCreate, WalkInGuest
)
from hms.services.base import BaseService, transactional
from hms.services.billing_service import BillingService
from hms.services.reservation_service import ReservationService
from hms.services.room_service import RoomService
from hms.services.result import ServiceResult, ErrorCode

logger = logging.getLogger(__name__)


class FrontDeskService(BaseService):
    """Front desk service"""

    source = "front_desk_service"

    def __init__(self, db: Session, event_publisher=None, clock=None):
        super().__init__(db, event_publisher, clock)
        self.reservation_service = ReservationService(db, event_publisher, clock)
        self.room_service = RoomService(db, event_publisher, clock)
        self.billing_service = BillingService(db, event_publisher, clock)

    def _get_reservation(self, reservation_id: str) -> Optional[Reservation]:
        return self.reservation_service.get_reservation(reservation_id)

    def get_current_guests(self) -> List[ReservationDetail]:
        return self.reservation_service.get_checked_in_reservations()

    def get_pending_reservations(self) -> List[ReservationDetail]:
        return self.reservation_service.get_pending_reservations()

    @transactional
    def check_in(self, reservation_id: str, room_id: str,
                 actor_id: Optional[str] = None) -> ServiceResult:
        """
        Check a confirmed reservation into a room
        Creates the room assignment, marks the room occupied, moves checkin_status.
        """
        reservation = self._get_reservation(reservation_id)
        if not reservation:
            return ServiceResult.fail(ErrorCode.RESERVATION_NOT_FOUND, "Reservation not found")
        if reservation.checkin_status != CheckinStatus.NOT_CHECKED_IN:
            return ServiceResult.fail(
                ErrorCode.ALREADY_CHECKED_IN, "Reservation has already been checked in"
            )
        if reservation.status != ReservationStatus.CONFIRMED:
            return ServiceResult.fail(
                ErrorCode.RESERVATION_NOT_CONFIRMED, "Reservation must be confirmed to check in"
            )

        assigned = self.room_service.assign(reservation, room_id, actor_id)
        if not assigned.success:
            return assigned
        assignment = assigned.data

        reservation.transition_checkin_status(CheckinStatus.CHECKED_IN, at=self._now())
        self.db.flush()

        self._emit(EventType.GUEST_CHECKED_IN, GuestCheckedInData(
            timestamp=self._now(),
            reservation_id=reservation.id,
            guest_id=reservation.user_id,
            room_id=assignment.room_id,
            room_number=assignment.room.room_number,
            operator_id=actor_id,
            is_walk_in=bool(reservation.is_walk_in),
        ))
        return ServiceResult.ok({"reservation": reservation, "room_assignment": assignment})

    @transactional
    def check_out(self, reservation_id: str, payment_method: PaymentMethod, amount=0,
                  service_charges: Optional[List[ServiceChargeCreate]] = None,
                  actor_id: Optional[str] = None) -> ServiceResult:
        """
        Check a guest out

        Order: service charges, checkout payment (any amount >= 0, may be 0),
        room released and assignment deleted, checkin_status -> checked_out.
        """
        reservation = self._get_reservation(reservation_id)
        if not reservation:
            return ServiceResult.fail(ErrorCode.RESERVATION_NOT_FOUND, "Reservation not found")
        if reservation.checkin_status != CheckinStatus.CHECKED_IN:
            return ServiceResult.fail(
                ErrorCode.INVALID_STATUS_FOR_CHECKOUT, "Reservation must be checked in to check out"
            )

        now = self._now()
        charges = [
            self.billing_service.record_service_charge(reservation, charge, actor_id)
            for charge in service_charges or []
        ]

        paid = self.billing_service.process_payment(
            reservation.id, amount, payment_method, actor_id,
            transaction_id=f"CHECKOUT_{int(now.timestamp() * 1000)}",
        )
        if not paid.success:
            return paid
        payment = paid.data

        released = self.room_service.release(reservation.id)
        if not released.success:
            return released
        room = released.data

        reservation.transition_checkin_status(CheckinStatus.CHECKED_OUT, at=now)
        self.db.flush()

        self._emit(EventType.GUEST_CHECKED_OUT, GuestCheckedOutData(
            timestamp=now,
            reservation_id=reservation.id,
            guest_id=reservation.user_id,
            room_id=room.id if room else None,
            room_number=room.room_number if room else None,
            payment_id=payment.id,
            amount_paid=payment.amount,
            service_charge_ids=[charge.id for charge in charges],
            operator_id=actor_id,
        ))
        return ServiceResult.ok({
            "reservation": reservation,
            "payment": payment,
            "service_charges": charges,
        })

    @transactional
    def create_walk_in(self, guest_info: WalkInGuest, reservation_data: ReservationCreate,
                       actor_id: Optional[str] = None) -> ServiceResult:
        """
        Register a walk-in guest and book them

        The guest identity has no password; an identity with the same email is
        reused. Check-in into the first bookable room of the type is attempted
        immediately; if it is not possible the reservation is returned unassigned.
        """
        guest = self.db.query(User).filter(User.email == guest_info.email).first()
        if not guest:
            guest = User(
                name=guest_info.name,
                email=guest_info.email,
                phone=guest_info.phone,
                address=guest_info.address,
                role=UserRole.CUSTOMER,
                password_hash=None,
                is_walk_in=True,
                created_at=self._now(),
            )
            self.db.add(guest)
            self.db.flush()

        created = self.reservation_service.create(guest.id, reservation_data, is_walk_in=True)
        if not created.success:
            return created
        reservation = created.data

        assignment = None
        room = self.room_service.find_bookable_room(
            reservation.room_type_id, reservation.check_in_date, reservation.check_out_date
        )
        if room:
            # savepoint: a failed check-in must not poison the booking
            savepoint = self.db.begin_nested()
            checked_in = self.check_in(reservation.id, room.id, actor_id)
            if checked_in.success:
                savepoint.commit()
                assignment = checked_in.data["room_assignment"]
            else:
                if savepoint.is_active:
                    savepoint.rollback()
                logger.info("Walk-in %s left unassigned: %s",
                            reservation.id, checked_in.error.code.value)

        return ServiceResult.ok({
            "guest": guest,
            "reservation": reservation,
            "room_assignment": assignment,
        })

    @transactional
    def add_service_charge(self, reservation_id: str, charge: ServiceChargeCreate,
                           actor_id: Optional[str] = None) -> ServiceResult:
        reservation = self._get_reservation(reservation_id)
        if not reservation:
            return ServiceResult.fail(ErrorCode.RESERVATION_NOT_FOUND, "Reservation not found")
        if reservation.checkin_status != CheckinStatus.CHECKED_IN:
            return ServiceResult.fail(
                ErrorCode.INVALID_STATUS_FOR_CHARGES, "Charges can only be added during a stay"
            )
        return ServiceResult.ok(
            self.billing_service.record_service_charge(reservation, charge, actor_id)
        )
