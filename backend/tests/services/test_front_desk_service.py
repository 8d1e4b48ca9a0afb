"""
Tests for hms/services/front_desk_service.py
Covers: check-in guards and exclusivity, check-out settlement, walk-ins,
in-stay service charges and all-or-nothing behaviour across sub-services.
"""
import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from sqlalchemy.exc import IntegrityError

from hms.models.entities import (
    Reservation, Room, RoomType, RoomAssignment, Payment, ServiceCharge, User
)
from hms.models.enums import (
    ReservationStatus, CheckinStatus, RoomStatus, PaymentMethod, PaymentStatus, ServiceType
)
from hms.models.events import EventType
from hms.models.schemas import ReservationCreate, ServiceChargeCreate, WalkInGuest
from hms.services.billing_service import BillingService
from hms.services.front_desk_service import FrontDeskService
from hms.services.result import ErrorCode

NOW = datetime(2026, 10, 19, 14, 0, 0)
TODAY = NOW.date()


@pytest.fixture
def service(db_session, clock, events):
    return FrontDeskService(db_session, event_publisher=events, clock=clock)


def _make_reservation(db_session, guest, room_type, **kwargs):
    defaults = dict(
        user_id=guest.id,
        room_type_id=room_type.id,
        check_in_date=TODAY,
        check_out_date=TODAY + timedelta(days=4),
        total_price=Decimal("60000.00"),
        discount_amount=Decimal("0.00"),
        final_price=Decimal("60000.00"),
        status=ReservationStatus.CONFIRMED,
        created_at=NOW,
    )
    defaults.update(kwargs)
    reservation = Reservation(**defaults)
    db_session.add(reservation)
    db_session.commit()
    return reservation


@pytest.fixture
def confirmed(db_session, sample_guest, sample_room_type):
    return _make_reservation(db_session, sample_guest, sample_room_type)


@pytest.fixture
def checked_in(service, confirmed, sample_room, clerk_user):
    assert service.check_in(confirmed.id, sample_room.id, clerk_user.id).success
    return confirmed


class TestCheckIn:

    def test_check_in(self, service, db_session, confirmed, sample_room, clerk_user, events):
        result = service.check_in(confirmed.id, sample_room.id, clerk_user.id)

        assert result.success
        db_session.refresh(sample_room)
        db_session.refresh(confirmed)
        assert sample_room.status == RoomStatus.OCCUPIED
        assert confirmed.checkin_status == CheckinStatus.CHECKED_IN
        assert confirmed.status == ReservationStatus.CONFIRMED
        assert confirmed.checked_in_at == NOW
        assignment = db_session.query(RoomAssignment).one()
        assert assignment.reservation_id == confirmed.id
        assert assignment.room_id == sample_room.id
        assert assignment.assigned_by == clerk_user.id
        assert events.types == [EventType.GUEST_CHECKED_IN]

    def test_second_check_in(self, service, checked_in, sample_room):
        result = service.check_in(checked_in.id, sample_room.id)
        assert result.code == ErrorCode.ALREADY_CHECKED_IN

    def test_pending_cannot_check_in(self, service, db_session, sample_guest,
                                     sample_room_type, sample_room):
        reservation = _make_reservation(db_session, sample_guest, sample_room_type,
                                        status=ReservationStatus.PENDING)
        result = service.check_in(reservation.id, sample_room.id)
        assert result.code == ErrorCode.RESERVATION_NOT_CONFIRMED

    def test_unknown_reservation(self, service, sample_room):
        assert service.check_in("missing", sample_room.id).code == ErrorCode.RESERVATION_NOT_FOUND

    def test_unknown_room(self, service, confirmed):
        assert service.check_in(confirmed.id, "missing").code == ErrorCode.ROOM_NOT_FOUND

    def test_room_not_available(self, service, db_session, confirmed, sample_room):
        sample_room.status = RoomStatus.CLEANING
        db_session.commit()
        assert service.check_in(confirmed.id, sample_room.id).code == ErrorCode.ROOM_NOT_AVAILABLE

    def test_room_type_mismatch(self, service, db_session, confirmed):
        suite = RoomType(name="Suite", base_price=Decimal("40000.00"), capacity=4)
        db_session.add(suite)
        db_session.flush()
        room = Room(room_number="901", room_type_id=suite.id, status=RoomStatus.AVAILABLE)
        db_session.add(room)
        db_session.commit()

        assert service.check_in(confirmed.id, room.id).code == ErrorCode.ROOM_TYPE_MISMATCH

    def test_room_exclusivity(self, service, db_session, checked_in, sample_guest,
                              sample_room_type, sample_room):
        # room flagged available again by mistake while still bound
        sample_room.status = RoomStatus.AVAILABLE
        db_session.commit()
        other = _make_reservation(db_session, sample_guest, sample_room_type)

        result = service.check_in(other.id, sample_room.id)

        assert result.code == ErrorCode.ROOM_ALREADY_ASSIGNED
        db_session.refresh(other)
        assert other.checkin_status == CheckinStatus.NOT_CHECKED_IN
        assert db_session.query(RoomAssignment).count() == 1


class TestCheckOut:

    def test_check_out_with_zero_payment_and_charge(self, service, db_session, checked_in,
                                                    sample_room, clerk_user, events):
        billing = BillingService(db_session)
        before = billing.balance_of(checked_in).outstanding_balance

        result = service.check_out(
            checked_in.id, PaymentMethod.CASH, Decimal("0"),
            [ServiceChargeCreate(service_type=ServiceType.ROOM_SERVICE,
                                 description="Room service", amount=Decimal("500"))],
            clerk_user.id
        )

        assert result.success
        db_session.refresh(sample_room)
        db_session.refresh(checked_in)
        assert sample_room.status == RoomStatus.AVAILABLE
        assert db_session.query(RoomAssignment).count() == 0
        assert checked_in.checkin_status == CheckinStatus.CHECKED_OUT
        assert checked_in.checked_out_at == NOW
        assert result.data["payment"].amount == Decimal("0.00")
        assert result.data["payment"].transaction_id.startswith("CHECKOUT_")
        assert len(result.data["service_charges"]) == 1
        after = billing.balance_of(checked_in).outstanding_balance
        assert after - before == Decimal("500.00")
        assert events.types[-1] == EventType.GUEST_CHECKED_OUT

    def test_not_checked_in(self, service, confirmed):
        result = service.check_out(confirmed.id, PaymentMethod.CASH, 0)
        assert result.code == ErrorCode.INVALID_STATUS_FOR_CHECKOUT

    def test_unknown(self, service):
        result = service.check_out("missing", PaymentMethod.CASH, 0)
        assert result.code == ErrorCode.RESERVATION_NOT_FOUND

    def test_unknown_payment_method_rolls_back(self, service, db_session, checked_in,
                                               sample_room):
        result = service.check_out(
            checked_in.id, "bitcoin", Decimal("100"),
            [ServiceChargeCreate(description="Minibar", amount=Decimal("800"))]
        )

        assert result.code == ErrorCode.INVALID_PAYMENT_METHOD
        db_session.refresh(checked_in)
        assert checked_in.checkin_status == CheckinStatus.CHECKED_IN
        assert db_session.query(ServiceCharge).count() == 0
        assert db_session.query(RoomAssignment).count() == 1

    def test_ledger_failure_aborts_everything(self, service, db_session, checked_in,
                                              sample_room, events):
        events.clear()
        result = service.check_out(
            checked_in.id, PaymentMethod.TRAVEL_COMPANY, Decimal("100"),
            [ServiceChargeCreate(description="Minibar", amount=Decimal("50"))]
        )

        assert result.code == ErrorCode.TRAVEL_COMPANY_NOT_FOUND
        db_session.refresh(sample_room)
        db_session.refresh(checked_in)
        assert sample_room.status == RoomStatus.OCCUPIED
        assert checked_in.checkin_status == CheckinStatus.CHECKED_IN
        assert db_session.query(RoomAssignment).count() == 1
        assert db_session.query(ServiceCharge).count() == 0
        assert db_session.query(Payment).count() == 0
        assert events == []

    def test_room_can_be_reassigned_after_check_out(self, service, db_session, checked_in,
                                                    sample_guest, sample_room_type, sample_room):
        service.check_out(checked_in.id, PaymentMethod.CASH, Decimal("60000"))
        next_guest = _make_reservation(db_session, sample_guest, sample_room_type)

        assert service.check_in(next_guest.id, sample_room.id).success


class TestWalkIn:

    def _walk_in(self, service, room_type, card=True, email="walker@example.com"):
        return service.create_walk_in(
            WalkInGuest(name="Walk In", email=email, phone="555-0100"),
            ReservationCreate(room_type_id=room_type.id, check_in_date=TODAY,
                              check_out_date=TODAY + timedelta(days=1),
                              has_credit_card=card, credit_card_last4="1111" if card else None),
        )

    def test_walk_in_with_card_is_checked_in(self, service, db_session, sample_room_type,
                                             sample_room):
        result = self._walk_in(service, sample_room_type)

        assert result.success
        guest = result.data["guest"]
        reservation = result.data["reservation"]
        assert guest.password_hash is None
        assert guest.is_walk_in
        assert reservation.is_walk_in
        assert reservation.checkin_status == CheckinStatus.CHECKED_IN
        assert result.data["room_assignment"].room_id == sample_room.id

    def test_walk_in_without_card_stays_unassigned(self, service, db_session,
                                                   sample_room_type, sample_room):
        result = self._walk_in(service, sample_room_type, card=False)

        assert result.success
        assert result.data["room_assignment"] is None
        assert result.data["reservation"].status == ReservationStatus.PENDING
        assert result.data["reservation"].checkin_status == CheckinStatus.NOT_CHECKED_IN

    def test_room_conflict_leaves_walk_in_booked_but_unassigned(self, service, db_session,
                                                                sample_room_type, sample_room,
                                                                monkeypatch):
        real_flush = db_session.flush

        def conflicting_flush(*args, **kwargs):
            if any(isinstance(obj, RoomAssignment) for obj in db_session.new):
                raise IntegrityError("INSERT INTO room_assignments", {},
                                     Exception("UNIQUE constraint failed"))
            return real_flush(*args, **kwargs)

        monkeypatch.setattr(db_session, "flush", conflicting_flush)

        result = self._walk_in(service, sample_room_type)

        assert result.success
        assert result.data["room_assignment"] is None
        reservation = result.data["reservation"]
        db_session.refresh(reservation)
        db_session.refresh(sample_room)
        assert reservation.is_walk_in
        assert reservation.checkin_status == CheckinStatus.NOT_CHECKED_IN
        assert sample_room.status == RoomStatus.AVAILABLE
        assert db_session.query(RoomAssignment).count() == 0
        db_session.refresh(sample_room)
        assert sample_room.status == RoomStatus.AVAILABLE

    def test_existing_identity_reused(self, service, db_session, sample_guest,
                                      sample_room_type, sample_room):
        result = self._walk_in(service, sample_room_type, email=sample_guest.email)

        assert result.data["guest"].id == sample_guest.id
        assert db_session.query(User).count() == 1

    def test_failed_booking_creates_no_identity(self, service, db_session, sample_room_type):
        result = self._walk_in(service, sample_room_type)

        assert result.code == ErrorCode.NO_ROOMS_AVAILABLE
        assert db_session.query(User).count() == 0


class TestServiceCharges:

    def test_add_charge_during_stay(self, service, db_session, checked_in, clerk_user, events):
        result = service.add_service_charge(
            checked_in.id,
            ServiceChargeCreate(service_type=ServiceType.LAUNDRY, description="Shirts",
                                amount=Decimal("1200")),
            clerk_user.id,
        )

        assert result.success
        assert result.data.amount == Decimal("1200.00")
        assert result.data.charged_by == clerk_user.id
        assert events.types[-1] == EventType.SERVICE_CHARGE_ADDED

    def test_charge_requires_stay(self, service, confirmed):
        result = service.add_service_charge(
            confirmed.id, ServiceChargeCreate(description="Early minibar", amount=Decimal("10"))
        )
        assert result.code == ErrorCode.INVALID_STATUS_FOR_CHARGES

    def test_current_guests(self, service, checked_in):
        assert [g.id for g in service.get_current_guests()] == [checked_in.id]
