"""
Tests for hms/services/billing_service.py
"""
import pytest
from datetime import datetime, timedelta
from decimal import Decimal

from hms.models.entities import Reservation, Payment, TravelCompany
from hms.models.enums import ReservationStatus, PaymentMethod, PaymentStatus
from hms.models.events import EventType
from hms.models.schemas import ServiceChargeCreate
from hms.services.billing_service import BillingService
from hms.services.result import ErrorCode

NOW = datetime(2026, 10, 19, 14, 0, 0)
TODAY = NOW.date()


@pytest.fixture
def service(db_session, clock, events):
    return BillingService(db_session, event_publisher=events, clock=clock)


def _make_reservation(db_session, guest, room_type, final_price="60000.00", **kwargs):
    defaults = dict(
        user_id=guest.id,
        room_type_id=room_type.id,
        check_in_date=TODAY,
        check_out_date=TODAY + timedelta(days=4),
        total_price=Decimal(final_price),
        discount_amount=Decimal("0.00"),
        final_price=Decimal(final_price),
        created_at=NOW,
    )
    defaults.update(kwargs)
    reservation = Reservation(**defaults)
    db_session.add(reservation)
    db_session.commit()
    return reservation


@pytest.fixture
def pending(db_session, sample_guest, sample_room_type):
    return _make_reservation(db_session, sample_guest, sample_room_type)


class TestProcessPayment:

    def test_partial_payment_keeps_pending(self, service, pending, events):
        result = service.process_payment(pending.id, Decimal("20000"), PaymentMethod.CASH, "clerk")

        assert result.success
        assert result.data.status == PaymentStatus.COMPLETED
        assert result.data.payment_date == NOW
        assert pending.status == ReservationStatus.PENDING
        assert events.types == [EventType.PAYMENT_RECEIVED]

    def test_full_payment_confirms(self, service, pending, events):
        service.process_payment(pending.id, Decimal("20000"), PaymentMethod.CASH)
        service.process_payment(pending.id, Decimal("40000"), PaymentMethod.CREDIT_CARD)

        assert pending.status == ReservationStatus.CONFIRMED
        assert events.types[-1] == EventType.RESERVATION_CONFIRMED

    def test_payment_on_confirmed_is_monotonic(self, service, db_session, sample_guest,
                                               sample_room_type, events):
        reservation = _make_reservation(db_session, sample_guest, sample_room_type,
                                        status=ReservationStatus.CONFIRMED)

        result = service.process_payment(reservation.id, Decimal("60000"), PaymentMethod.CASH)

        assert result.success
        assert reservation.status == ReservationStatus.CONFIRMED
        assert EventType.RESERVATION_CONFIRMED not in events.types

    def test_cancelled_reservation(self, service, db_session, sample_guest, sample_room_type):
        reservation = _make_reservation(db_session, sample_guest, sample_room_type,
                                        status=ReservationStatus.CANCELLED)
        result = service.process_payment(reservation.id, Decimal("10"), PaymentMethod.CASH)
        assert result.code == ErrorCode.INVALID_STATUS_FOR_PAYMENT

    def test_unknown_reservation(self, service):
        result = service.process_payment("missing", Decimal("10"), PaymentMethod.CASH)
        assert result.code == ErrorCode.RESERVATION_NOT_FOUND

    def test_negative_amount(self, service, pending):
        result = service.process_payment(pending.id, Decimal("-1"), PaymentMethod.CASH)
        assert result.code == ErrorCode.INVALID_AMOUNT

    def test_unknown_payment_method(self, service, db_session, pending, events):
        result = service.process_payment(pending.id, Decimal("10"), "bitcoin")

        assert result.code == ErrorCode.INVALID_PAYMENT_METHOD
        assert db_session.query(Payment).count() == 0
        assert events == []

    def test_method_given_as_plain_string(self, service, pending):
        result = service.process_payment(pending.id, Decimal("10"), "cash")
        assert result.data.payment_method == PaymentMethod.CASH

    def test_travel_company_without_account(self, service, pending):
        result = service.process_payment(pending.id, Decimal("10"), PaymentMethod.TRAVEL_COMPANY)
        assert result.code == ErrorCode.TRAVEL_COMPANY_NOT_FOUND


class TestTravelCompanyCredit:

    @pytest.fixture
    def company_booking(self, db_session, travel_agent, travel_company, sample_room_type):
        travel_company.credit_limit = Decimal("50000.00")
        travel_company.current_balance = Decimal("45000.00")
        db_session.commit()
        return _make_reservation(db_session, travel_agent, sample_room_type,
                                 is_travel_company=True, travel_company_id=travel_company.id)

    def test_within_limit_charges_account(self, service, db_session, company_booking,
                                          travel_company):
        result = service.process_payment(company_booking.id, Decimal("5000"),
                                         PaymentMethod.TRAVEL_COMPANY)

        assert result.success
        db_session.refresh(travel_company)
        assert travel_company.current_balance == Decimal("50000.00")

    def test_over_limit_rejected_without_payment_row(self, service, db_session,
                                                     company_booking, travel_company, events):
        result = service.process_payment(company_booking.id, Decimal("5000.01"),
                                         PaymentMethod.TRAVEL_COMPANY)

        assert result.code == ErrorCode.CREDIT_LIMIT_EXCEEDED
        assert db_session.query(Payment).count() == 0
        db_session.refresh(travel_company)
        assert travel_company.current_balance == Decimal("45000.00")
        assert events == []


class TestRefund:

    @pytest.fixture
    def payment(self, service, pending):
        return service.process_payment(pending.id, Decimal("20000"), PaymentMethod.CREDIT_CARD,
                                       transaction_id="TXN-1").data

    def test_refund(self, service, db_session, payment, pending):
        result = service.refund(payment.id, Decimal("5000"), "Guest complaint", "manager")

        assert result.success
        refund = result.data
        assert refund.amount == Decimal("-5000.00")
        assert refund.status == PaymentStatus.REFUNDED
        assert refund.transaction_id == "TXN-1_REFUND"
        assert refund.notes == "Guest complaint"
        db_session.refresh(payment)
        assert payment.status == PaymentStatus.REFUNDED
        assert service.total_paid(pending.id) == Decimal("0.00")

    def test_refund_twice(self, service, payment):
        service.refund(payment.id, Decimal("100"), "first")
        result = service.refund(payment.id, Decimal("100"), "second")
        assert result.code == ErrorCode.INVALID_PAYMENT_STATUS

    def test_refund_more_than_paid(self, service, payment):
        result = service.refund(payment.id, Decimal("20000.01"), "too much")
        assert result.code == ErrorCode.INVALID_REFUND_AMOUNT

    def test_refund_zero(self, service, payment):
        assert service.refund(payment.id, Decimal("0"), "nothing").code == \
            ErrorCode.INVALID_REFUND_AMOUNT

    def test_unknown_payment(self, service):
        assert service.refund("missing", Decimal("1"), "x").code == ErrorCode.PAYMENT_NOT_FOUND


class TestBalance:

    def test_balance_invariant_after_each_write(self, service, db_session, pending):
        steps = [
            lambda: service.process_payment(pending.id, Decimal("10000"), PaymentMethod.CASH),
            lambda: service.record_service_charge(
                pending, ServiceChargeCreate(description="Spa", amount=Decimal("750"))),
            lambda: service.process_payment(pending.id, Decimal("2500.50"), PaymentMethod.CASH),
        ]
        for step in steps:
            step()
            db_session.commit()
            balance = service.get_balance(pending.id).data
            paid = sum(p.amount for p in db_session.query(Payment).filter(
                Payment.status == PaymentStatus.COMPLETED))
            charges = service.service_charges_total(pending.id)
            assert balance.outstanding_balance == Decimal("60000.00") - paid + charges

        assert service.get_balance(pending.id).data.outstanding_balance == Decimal("48249.50")

    def test_overpayment_is_not_clamped(self, service, pending):
        service.process_payment(pending.id, Decimal("70000"), PaymentMethod.CASH)
        assert service.get_balance(pending.id).data.outstanding_balance == Decimal("-10000.00")

    def test_history_and_summary(self, service, pending):
        service.process_payment(pending.id, Decimal("100"), PaymentMethod.CASH)
        service.process_payment(pending.id, Decimal("200"), PaymentMethod.CASH)

        assert len(service.get_payment_history(pending.id).data) == 2
        summary = service.get_checkout_summary(pending.id).data
        assert summary["total_paid"] == Decimal("300.00")
        assert summary["outstanding_balance"] == Decimal("59700.00")

    def test_unknown_reservation(self, service):
        assert service.get_balance("missing").code == ErrorCode.RESERVATION_NOT_FOUND
        assert service.get_payment_history("missing").code == ErrorCode.RESERVATION_NOT_FOUND
