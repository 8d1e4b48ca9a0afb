"""
Billing service - payment ledger
Payments are append-only signed rows; the only mutation after insert is
completed -> refunded. Balances are always derived, never stored:

    outstanding = final_price - sum(completed payments) + sum(service charges)
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional
import logging

from sqlalchemy import func, select

from hms.models.entities import Reservation, Payment, ServiceCharge, TravelCompany
from hms.models.enums import PaymentMethod, PaymentStatus, ReservationStatus
from hms.models.events import (
    EventType, PaymentData, ServiceChargeAddedData, ReservationStatusChangedData
)
from hms.models.schemas import ServiceChargeCreate
from hms.services.base import BaseService, transactional
from hms.services.price_service import to_money
from hms.services.result import ServiceResult, ErrorCode

logger = logging.getLogger(__name__)

PAYABLE_STATUSES = (ReservationStatus.PENDING, ReservationStatus.CONFIRMED)


def total_paid_expr():
    """Correlated scalar subquery: completed payments of the enclosing Reservation row"""
    return select(func.coalesce(func.sum(Payment.amount), 0)).where(
        Payment.reservation_id == Reservation.id,
        Payment.status == PaymentStatus.COMPLETED,
    ).correlate(Reservation).scalar_subquery()


def service_charges_total_expr():
    """Correlated scalar subquery: service charges of the enclosing Reservation row"""
    return select(func.coalesce(func.sum(ServiceCharge.amount), 0)).where(
        ServiceCharge.reservation_id == Reservation.id,
    ).correlate(Reservation).scalar_subquery()


@dataclass(frozen=True)
class Balance:
    final_price: Decimal
    total_paid: Decimal
    service_charges_total: Decimal

    @property
    def outstanding_balance(self) -> Decimal:
        # not clamped: overpayment shows as a negative balance
        return self.final_price - self.total_paid + self.service_charges_total


class BillingService(BaseService):
    """Billing service"""

    source = "billing_service"

    def get_reservation(self, reservation_id: str) -> Optional[Reservation]:
        return self.db.query(Reservation).filter(Reservation.id == reservation_id).first()

    def get_payment(self, payment_id: str) -> Optional[Payment]:
        return self.db.query(Payment).filter(Payment.id == payment_id).first()

    # ============== Balances ==============

    def total_paid(self, reservation_id: str) -> Decimal:
        total = self.db.query(func.coalesce(func.sum(Payment.amount), 0)).filter(
            Payment.reservation_id == reservation_id,
            Payment.status == PaymentStatus.COMPLETED,
        ).scalar()
        return to_money(total)

    def service_charges_total(self, reservation_id: str) -> Decimal:
        total = self.db.query(func.coalesce(func.sum(ServiceCharge.amount), 0)).filter(
            ServiceCharge.reservation_id == reservation_id
        ).scalar()
        return to_money(total)

    def balance_of(self, reservation: Reservation) -> Balance:
        return Balance(
            final_price=to_money(reservation.final_price),
            total_paid=self.total_paid(reservation.id),
            service_charges_total=self.service_charges_total(reservation.id),
        )

    def get_balance(self, reservation_id: str) -> ServiceResult:
        reservation = self.get_reservation(reservation_id)
        if not reservation:
            return ServiceResult.fail(ErrorCode.RESERVATION_NOT_FOUND, "Reservation not found")
        return ServiceResult.ok(self.balance_of(reservation))

    def get_payment_history(self, reservation_id: str) -> ServiceResult:
        """All payment rows of a reservation, refunds included, oldest first"""
        reservation = self.get_reservation(reservation_id)
        if not reservation:
            return ServiceResult.fail(ErrorCode.RESERVATION_NOT_FOUND, "Reservation not found")
        payments = self.db.query(Payment).filter(
            Payment.reservation_id == reservation_id
        ).order_by(Payment.payment_date).all()
        return ServiceResult.ok(payments)

    def get_checkout_summary(self, reservation_id: str) -> ServiceResult:
        reservation = self.get_reservation(reservation_id)
        if not reservation:
            return ServiceResult.fail(ErrorCode.RESERVATION_NOT_FOUND, "Reservation not found")

        balance = self.balance_of(reservation)
        charges = self.list_service_charges(reservation_id)
        payments = self.db.query(Payment).filter(
            Payment.reservation_id == reservation_id
        ).order_by(Payment.payment_date).all()
        return ServiceResult.ok({
            "reservation": reservation,
            "final_price": balance.final_price,
            "total_paid": balance.total_paid,
            "service_charges_total": balance.service_charges_total,
            "outstanding_balance": balance.outstanding_balance,
            "service_charges": charges,
            "payments": payments,
        })

    # ============== Writes ==============

    @transactional
    def process_payment(self, reservation_id: str, amount, payment_method: PaymentMethod,
                        actor_id: Optional[str] = None, transaction_id: Optional[str] = None,
                        notes: Optional[str] = None) -> ServiceResult:
        """
        Record a completed payment

        Travel-company payments are charged to the company account and are
        rejected before any row is written if they would exceed its credit limit.
        A pending reservation is confirmed once completed payments cover final_price.
        """
        reservation = self.get_reservation(reservation_id)
        if not reservation:
            return ServiceResult.fail(ErrorCode.RESERVATION_NOT_FOUND, "Reservation not found")
        if reservation.status not in PAYABLE_STATUSES:
            return ServiceResult.fail(
                ErrorCode.INVALID_STATUS_FOR_PAYMENT,
                f"Cannot take payment for a {reservation.status.value} reservation"
            )

        amount = to_money(amount)
        if amount < 0:
            return ServiceResult.fail(ErrorCode.INVALID_AMOUNT, "Payment amount cannot be negative")

        try:
            payment_method = PaymentMethod(payment_method)
        except ValueError:
            return ServiceResult.fail(
                ErrorCode.INVALID_PAYMENT_METHOD, f"Unknown payment method: {payment_method}"
            )
        if payment_method == PaymentMethod.TRAVEL_COMPANY:
            company = None
            if reservation.travel_company_id:
                company = self.db.query(TravelCompany).filter(
                    TravelCompany.id == reservation.travel_company_id
                ).first()
            if company is None:
                return ServiceResult.fail(
                    ErrorCode.TRAVEL_COMPANY_NOT_FOUND, "Reservation has no travel company account"
                )
            new_balance = to_money(company.current_balance) + amount
            if new_balance > to_money(company.credit_limit):
                return ServiceResult.fail(
                    ErrorCode.CREDIT_LIMIT_EXCEEDED,
                    f"Payment would exceed the credit limit of {company.company_name}"
                )
            company.current_balance = new_balance

        payment = Payment(
            reservation_id=reservation.id,
            amount=amount,
            payment_date=self._now(),
            payment_method=payment_method,
            transaction_id=transaction_id,
            status=PaymentStatus.COMPLETED,
            processed_by=actor_id,
            notes=notes,
        )
        self.db.add(payment)
        self.db.flush()

        self._emit(EventType.PAYMENT_RECEIVED, PaymentData(
            timestamp=self._now(),
            payment_id=payment.id,
            reservation_id=reservation.id,
            amount=amount,
            payment_method=payment_method.value,
            operator_id=actor_id,
        ))

        if self.total_paid(reservation.id) >= to_money(reservation.final_price):
            old_status = reservation.status
            if reservation.transition_status(ReservationStatus.CONFIRMED, at=self._now()):
                self._emit(EventType.RESERVATION_CONFIRMED, ReservationStatusChangedData(
                    timestamp=self._now(),
                    reservation_id=reservation.id,
                    old_status=old_status.value,
                    new_status=ReservationStatus.CONFIRMED.value,
                    reason="paid in full",
                ))
        self.db.flush()
        return ServiceResult.ok(payment)

    @transactional
    def refund(self, payment_id: str, amount, reason: str,
               actor_id: Optional[str] = None) -> ServiceResult:
        """
        Refund a completed payment
        The original row is marked refunded and a negative row records the refund.
        """
        original = self.get_payment(payment_id)
        if not original:
            return ServiceResult.fail(ErrorCode.PAYMENT_NOT_FOUND, "Payment not found")
        if original.status != PaymentStatus.COMPLETED:
            return ServiceResult.fail(
                ErrorCode.INVALID_PAYMENT_STATUS, "Only completed payments can be refunded"
            )

        amount = to_money(amount)
        if amount <= 0 or amount > to_money(original.amount):
            return ServiceResult.fail(
                ErrorCode.INVALID_REFUND_AMOUNT,
                "Refund amount must be positive and not exceed the original payment"
            )

        original.status = PaymentStatus.REFUNDED
        refund = Payment(
            reservation_id=original.reservation_id,
            amount=-amount,
            payment_date=self._now(),
            payment_method=original.payment_method,
            transaction_id=f"{original.transaction_id or original.id}_REFUND",
            status=PaymentStatus.REFUNDED,
            processed_by=actor_id,
            notes=reason,
        )
        self.db.add(refund)
        self.db.flush()

        self._emit(EventType.PAYMENT_REFUNDED, PaymentData(
            timestamp=self._now(),
            payment_id=refund.id,
            reservation_id=original.reservation_id,
            amount=-amount,
            payment_method=original.payment_method.value,
            operator_id=actor_id,
        ))
        return ServiceResult.ok(refund)

    def record_service_charge(self, reservation: Reservation, data: ServiceChargeCreate,
                              actor_id: Optional[str] = None) -> ServiceCharge:
        """Insert a charge row; callers own the guards and the unit of work"""
        charge = ServiceCharge(
            reservation_id=reservation.id,
            service_type=data.service_type,
            description=data.description,
            amount=to_money(data.amount),
            charged_at=self._now(),
            charged_by=actor_id,
            is_paid=False,
        )
        self.db.add(charge)
        self.db.flush()

        self._emit(EventType.SERVICE_CHARGE_ADDED, ServiceChargeAddedData(
            timestamp=self._now(),
            service_charge_id=charge.id,
            reservation_id=reservation.id,
            service_type=charge.service_type.value,
            amount=charge.amount,
            operator_id=actor_id,
        ))
        return charge

    def list_service_charges(self, reservation_id: str) -> List[ServiceCharge]:
        return self.db.query(ServiceCharge).filter(
            ServiceCharge.reservation_id == reservation_id
        ).order_by(ServiceCharge.charged_at).all()
