"""
Reservation service - reservation lifecycle
Creates, prices, updates and cancels reservations. The two status axes of a
reservation only move through the entity's transition methods.
"""
from math import ceil
from typing import List, Optional
import logging

from sqlalchemy.orm import Session

from hms.models.entities import Reservation, RoomType, User, RoomAssignment, Room
from hms.models.enums import ReservationStatus, CheckinStatus
from hms.models.events import EventType, ReservationCreatedData, ReservationStatusChangedData
from hms.models.schemas import (
    ReservationCreate, ReservationUpdate, ReservationFilter, ReservationDetail,
    BulkBookingCreate
)
from hms.services.base import BaseService, transactional
from hms.services.billing_service import total_paid_expr, service_charges_total_expr
from hms.services.price_service import PriceService, to_money
from hms.services.room_service import RoomService
from hms.services.result import ServiceResult, ErrorCode

logger = logging.getLogger(__name__)

UPDATABLE_STATUSES = (ReservationStatus.PENDING, ReservationStatus.CONFIRMED)


class ReservationService(BaseService):
    """Reservation service"""

    source = "reservation_service"

    def __init__(self, db: Session, event_publisher=None, clock=None):
        super().__init__(db, event_publisher, clock)
        self.price_service = PriceService(db)
        self.room_service = RoomService(db, event_publisher, clock)

    def get_reservation(self, reservation_id: str) -> Optional[Reservation]:
        return self.db.query(Reservation).filter(Reservation.id == reservation_id).first()

    # ============== Queries ==============

    def _detail_query(self):
        return self.db.query(
            Reservation,
            User.name,
            User.email,
            RoomType.name,
            Room.room_number,
            total_paid_expr(),
            service_charges_total_expr(),
        ).join(
            User, Reservation.user_id == User.id
        ).join(
            RoomType, Reservation.room_type_id == RoomType.id
        ).outerjoin(
            RoomAssignment, RoomAssignment.reservation_id == Reservation.id
        ).outerjoin(
            Room, RoomAssignment.room_id == Room.id
        )

    @staticmethod
    def _to_detail(row) -> ReservationDetail:
        reservation, user_name, user_email, room_type_name, room_number, paid, charges = row
        paid = to_money(paid)
        charges = to_money(charges)
        detail = ReservationDetail.model_validate(reservation)
        return detail.model_copy(update={
            "user_name": user_name,
            "user_email": user_email,
            "room_type_name": room_type_name,
            "room_number": room_number,
            "total_paid": paid,
            "service_charges_total": charges,
            "outstanding_balance": to_money(reservation.final_price) - paid + charges,
        })

    def get_reservation_detail(self, reservation_id: str) -> ServiceResult:
        row = self._detail_query().filter(Reservation.id == reservation_id).first()
        if not row:
            return ServiceResult.fail(ErrorCode.RESERVATION_NOT_FOUND, "Reservation not found")
        return ServiceResult.ok(self._to_detail(row))

    def get_user_reservations(self, user_id: str) -> List[ReservationDetail]:
        rows = self._detail_query().filter(
            Reservation.user_id == user_id
        ).order_by(Reservation.created_at.desc()).all()
        return [self._to_detail(row) for row in rows]

    def get_pending_reservations(self) -> List[ReservationDetail]:
        rows = self._detail_query().filter(
            Reservation.status == ReservationStatus.PENDING
        ).order_by(Reservation.check_in_date).all()
        return [self._to_detail(row) for row in rows]

    def get_checked_in_reservations(self) -> List[ReservationDetail]:
        """Current in-house guests"""
        rows = self._detail_query().filter(
            Reservation.checkin_status == CheckinStatus.CHECKED_IN
        ).order_by(Room.room_number).all()
        return [self._to_detail(row) for row in rows]

    def search_reservations(self, filters: ReservationFilter) -> List[ReservationDetail]:
        query = self._detail_query()
        if filters.status:
            query = query.filter(Reservation.status == filters.status)
        if filters.checkin_status:
            query = query.filter(Reservation.checkin_status == filters.checkin_status)
        if filters.date_from:
            query = query.filter(Reservation.check_in_date >= filters.date_from)
        if filters.date_to:
            query = query.filter(Reservation.check_out_date <= filters.date_to)
        if filters.room_type_id:
            query = query.filter(Reservation.room_type_id == filters.room_type_id)
        rows = query.order_by(Reservation.check_in_date, Reservation.created_at).all()
        return [self._to_detail(row) for row in rows]

    # ============== Lifecycle ==============

    def _validate_dates(self, check_in_date, check_out_date) -> Optional[ServiceResult]:
        if check_in_date < self._today():
            return ServiceResult.fail(
                ErrorCode.INVALID_CHECKIN_DATE, "Check-in date cannot be in the past"
            )
        if check_out_date <= check_in_date:
            return ServiceResult.fail(
                ErrorCode.INVALID_CHECKOUT_DATE, "Check-out date must be after check-in date"
            )
        return None

    def _emit_status_change(self, reservation: Reservation, event_type: EventType,
                            old_status: ReservationStatus, reason: str) -> None:
        self._emit(event_type, ReservationStatusChangedData(
            timestamp=self._now(),
            reservation_id=reservation.id,
            old_status=old_status.value,
            new_status=reservation.status.value,
            reason=reason,
        ))

    def _emit_created(self, reservation: Reservation) -> None:
        self._emit(EventType.RESERVATION_CREATED, ReservationCreatedData(
            timestamp=self._now(),
            reservation_id=reservation.id,
            guest_id=reservation.user_id,
            room_type_id=reservation.room_type_id,
            check_in_date=reservation.check_in_date.isoformat(),
            check_out_date=reservation.check_out_date.isoformat(),
            status=reservation.status.value,
            final_price=to_money(reservation.final_price),
            is_walk_in=bool(reservation.is_walk_in),
        ))

    @transactional
    def create(self, guest_id: str, request: ReservationCreate,
               is_walk_in: bool = False) -> ServiceResult:
        """
        Create a reservation

        - check-in not in the past, check-out after check-in
        - price: residential flat rate or nightly, less loyalty / travel-company discount
        - at least one bookable room of the type
        - confirmed when a credit card is supplied, else pending
        """
        invalid = self._validate_dates(request.check_in_date, request.check_out_date)
        if invalid:
            return invalid

        guest = self.db.query(User).filter(User.id == guest_id).first()
        if not guest:
            return ServiceResult.fail(ErrorCode.GUEST_NOT_FOUND, "Guest not found")

        room_type = self.db.query(RoomType).filter(RoomType.id == request.room_type_id).first()
        if not room_type:
            return ServiceResult.fail(ErrorCode.ROOM_TYPE_NOT_FOUND, "Room type not found")
        if request.num_guests > (room_type.capacity or 0):
            return ServiceResult.fail(
                ErrorCode.GUEST_COUNT_EXCEEDS_CAPACITY,
                f"{room_type.name} holds at most {room_type.capacity} guests"
            )

        quote = self.price_service.quote(
            room_type, guest, request.check_in_date, request.check_out_date,
            request.is_residential, request.residential_duration
        )

        available = self.room_service.count_bookable_rooms(
            room_type.id, request.check_in_date, request.check_out_date
        )
        if available == 0:
            return ServiceResult.fail(
                ErrorCode.NO_ROOMS_AVAILABLE, "No rooms available for the selected dates"
            )

        now = self._now()
        reservation = Reservation(
            status=ReservationStatus.CONFIRMED if request.has_credit_card
            else ReservationStatus.PENDING,
            checkin_status=CheckinStatus.NOT_CHECKED_IN,
            user_id=guest.id,
            room_type_id=room_type.id,
            check_in_date=request.check_in_date,
            check_out_date=request.check_out_date,
            num_guests=request.num_guests,
            total_price=quote.total_price,
            discount_amount=quote.discount_amount,
            final_price=quote.final_price,
            special_requests=request.special_requests,
            has_credit_card=request.has_credit_card,
            credit_card_last4=request.credit_card_last4,
            is_walk_in=is_walk_in,
            is_travel_company=quote.is_travel_company,
            travel_company_id=guest.travel_company_id,
            is_residential=request.is_residential,
            residential_duration=request.residential_duration,
            created_at=now,
            updated_at=now,
        )
        self.db.add(reservation)
        self.db.flush()

        self._emit_created(reservation)
        return ServiceResult.ok(reservation)

    @transactional
    def update(self, reservation_id: str, patch: ReservationUpdate) -> ServiceResult:
        """
        Partial update of a pending / confirmed reservation

        Neither status axis can be set directly. Adding a credit card to a
        pending reservation confirms it in the same update.
        """
        reservation = self.get_reservation(reservation_id)
        if not reservation:
            return ServiceResult.fail(ErrorCode.RESERVATION_NOT_FOUND, "Reservation not found")
        if reservation.status not in UPDATABLE_STATUSES:
            return ServiceResult.fail(
                ErrorCode.INVALID_STATUS_FOR_UPDATE,
                f"Cannot update a {reservation.status.value} reservation"
            )

        changes = patch.model_dump(exclude_unset=True)
        status_requested = changes.pop("status", None) is not None
        checkin_requested = changes.pop("checkin_status", None) is not None
        if status_requested and checkin_requested:
            return ServiceResult.fail(
                ErrorCode.INVALID_STATUS_CHECKIN_COMBINATION,
                "status and checkin_status cannot be changed in the same update"
            )
        if checkin_requested:
            return ServiceResult.fail(
                ErrorCode.CHECKIN_STATUS_NOT_UPDATABLE,
                "checkin_status changes only through check-in and check-out"
            )
        if status_requested:
            return ServiceResult.fail(
                ErrorCode.STATUS_NOT_UPDATABLE,
                "status changes only through cancellation, payment or adding a card"
            )

        now = self._now()
        applied = False

        new_check_out = changes.get("check_out_date")
        if new_check_out is not None:
            if new_check_out <= reservation.check_in_date:
                return ServiceResult.fail(
                    ErrorCode.INVALID_CHECKOUT_DATE, "Check-out date must be after check-in date"
                )
            quote = self.price_service.quote(
                reservation.room_type, reservation.guest, reservation.check_in_date,
                new_check_out, reservation.is_residential, reservation.residential_duration
            )
            reservation.check_out_date = new_check_out
            reservation.total_price = quote.total_price
            reservation.discount_amount = quote.discount_amount
            reservation.final_price = quote.final_price
            applied = True

        num_guests = changes.get("num_guests")
        if num_guests is not None:
            capacity = reservation.room_type.capacity or 0
            if num_guests > capacity:
                return ServiceResult.fail(
                    ErrorCode.GUEST_COUNT_EXCEEDS_CAPACITY,
                    f"{reservation.room_type.name} holds at most {capacity} guests"
                )
            reservation.num_guests = num_guests
            applied = True

        for key in ("special_requests", "credit_card_last4"):
            if key in changes:
                setattr(reservation, key, changes[key])
                applied = True

        has_card = changes.get("has_credit_card")
        if has_card is not None:
            card_added = has_card and not reservation.has_credit_card
            reservation.has_credit_card = has_card
            applied = True
            if card_added and reservation.status == ReservationStatus.PENDING:
                reservation.transition_status(ReservationStatus.CONFIRMED, at=now)
                self._emit_status_change(
                    reservation, EventType.RESERVATION_CONFIRMED,
                    ReservationStatus.PENDING, "credit card added"
                )

        if not applied:
            return ServiceResult.fail(ErrorCode.NO_UPDATES, "No valid fields to update")

        reservation.updated_at = now
        self.db.flush()
        return ServiceResult.ok(reservation)

    @transactional
    def cancel(self, reservation_id: str, reason: str = "cancelled by request") -> ServiceResult:
        reservation = self.get_reservation(reservation_id)
        if not reservation:
            return ServiceResult.fail(ErrorCode.RESERVATION_NOT_FOUND, "Reservation not found")
        if reservation.status == ReservationStatus.CANCELLED:
            return ServiceResult.fail(ErrorCode.ALREADY_CANCELLED, "Reservation is already cancelled")
        if reservation.checkin_status != CheckinStatus.NOT_CHECKED_IN:
            return ServiceResult.fail(
                ErrorCode.CANNOT_CANCEL_CHECKED_IN, "Cannot cancel a reservation after check-in"
            )
        if reservation.status == ReservationStatus.NO_SHOW:
            return ServiceResult.fail(
                ErrorCode.INVALID_STATUS_FOR_CANCEL, "Cannot cancel a no-show reservation"
            )

        old_status = reservation.status
        reservation.transition_status(ReservationStatus.CANCELLED, at=self._now())
        self.db.flush()
        self._emit_status_change(reservation, EventType.RESERVATION_CANCELLED, old_status, reason)
        return ServiceResult.ok(reservation)

    @transactional
    def create_bulk_booking(self, guest_id: str, request: BulkBookingCreate) -> ServiceResult:
        """
        Travel-company block booking: one reservation per room, guests spread
        evenly (rounded up). Blocks of two or more rooms are confirmed at once.
        """
        invalid = self._validate_dates(request.check_in_date, request.check_out_date)
        if invalid:
            return invalid

        guest = self.db.query(User).filter(User.id == guest_id).first()
        if not guest:
            return ServiceResult.fail(ErrorCode.GUEST_NOT_FOUND, "Guest not found")

        room_type = self.db.query(RoomType).filter(RoomType.id == request.room_type_id).first()
        if not room_type:
            return ServiceResult.fail(ErrorCode.ROOM_TYPE_NOT_FOUND, "Room type not found")

        guests_per_room = ceil(request.total_guests / request.number_of_rooms)
        if guests_per_room > (room_type.capacity or 0):
            return ServiceResult.fail(
                ErrorCode.GUEST_COUNT_EXCEEDS_CAPACITY,
                f"{room_type.name} holds at most {room_type.capacity} guests"
            )

        available = self.room_service.count_bookable_rooms(
            room_type.id, request.check_in_date, request.check_out_date
        )
        if available < request.number_of_rooms:
            return ServiceResult.fail(
                ErrorCode.INSUFFICIENT_ROOMS,
                f"Only {available} rooms available, {request.number_of_rooms} requested"
            )

        quote = self.price_service.quote(
            room_type, guest, request.check_in_date, request.check_out_date
        )
        status = (ReservationStatus.CONFIRMED if request.number_of_rooms >= 2
                  else ReservationStatus.PENDING)
        now = self._now()

        reservations = []
        for _ in range(request.number_of_rooms):
            reservation = Reservation(
                status=status,
                user_id=guest.id,
                room_type_id=room_type.id,
                check_in_date=request.check_in_date,
                check_out_date=request.check_out_date,
                num_guests=guests_per_room,
                total_price=quote.total_price,
                discount_amount=quote.discount_amount,
                final_price=quote.final_price,
                special_requests=request.special_requests,
                is_travel_company=True,
                travel_company_id=guest.travel_company_id,
                created_at=now,
                updated_at=now,
            )
            self.db.add(reservation)
            reservations.append(reservation)
        self.db.flush()

        for reservation in reservations:
            self._emit_created(reservation)
        logger.info("Bulk booking of %d rooms for guest %s", len(reservations), guest.id)
        return ServiceResult.ok(reservations)
